"""Bearer token acquisition for Microsoft Graph.

Tokens come from the client-credentials flow via ``azure-identity``. A fresh
credential object is built for every acquisition so a refresh after a 401
never returns the credential's cached (and rejected) token.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import CertificateCredential, ClientSecretCredential

from entrasync.core.config import GraphCredentials
from entrasync.core.constants import DEFAULT_REFRESH_LIMIT, GRAPH_SCOPE
from entrasync.core.errors import AuthExhausted, AuthFailure

logger = logging.getLogger(__name__)


def build_credential(credentials: GraphCredentials) -> TokenCredential:
    """Create an azure-identity credential for the configured auth method."""
    if credentials.uses_certificate:
        return CertificateCredential(
            tenant_id=credentials.tenant_id,
            client_id=credentials.client_id,
            certificate_path=credentials.certificate_path,
            password=credentials.certificate_password,
        )
    return ClientSecretCredential(
        tenant_id=credentials.tenant_id,
        client_id=credentials.client_id,
        client_secret=credentials.client_secret,
    )


def acquire_token(credentials: GraphCredentials, scope: str = GRAPH_SCOPE) -> str:
    """Acquire a bearer token for the given audience.

    Args:
        credentials: App registration credentials
        scope: Token audience, the Graph scope or the security API scope

    Returns:
        The raw access token

    Raises:
        AuthFailure: If the identity platform rejects the request
    """
    method = "certificate" if credentials.uses_certificate else "client secret"
    logger.debug(f"Requesting token for {scope} using {method}")

    try:
        token = build_credential(credentials).get_token(scope)
    except (ClientAuthenticationError, ValueError, OSError) as e:
        logger.error(f"Token acquisition failed for {scope}: {e}")
        raise AuthFailure(f"Token acquisition failed for {scope}: {e}") from e

    return token.token


@dataclass
class AuthContext:
    """Bearer token plus the run-wide refresh budget.

    Owned by the caller and passed into the directory client, which is the
    only place ``refresh`` is called.
    """

    token_provider: Callable[[], str]
    refresh_limit: int = DEFAULT_REFRESH_LIMIT
    token: str | None = None
    refresh_count: int = 0

    @classmethod
    def from_credentials(
        cls,
        credentials: GraphCredentials,
        scope: str = GRAPH_SCOPE,
        refresh_limit: int = DEFAULT_REFRESH_LIMIT,
    ) -> "AuthContext":
        """Create a context that acquires tokens for ``scope``."""
        return cls(
            token_provider=lambda: acquire_token(credentials, scope),
            refresh_limit=refresh_limit,
        )

    @property
    def can_refresh(self) -> bool:
        """Whether another refresh is allowed."""
        return self.refresh_count < self.refresh_limit

    def get_token(self) -> str:
        """Return the current token, acquiring the first one if needed."""
        if self.token is None:
            self.token = self.token_provider()
        return self.token

    def refresh(self, url: str = "") -> str:
        """Replace the token after the API rejected it.

        Raises:
            AuthExhausted: If the refresh ceiling has been reached
        """
        if not self.can_refresh:
            logger.error(f"Token refresh limit ({self.refresh_limit}) reached")
            raise AuthExhausted(self.refresh_count, url)

        self.refresh_count += 1
        logger.warning(
            f"Token rejected, refreshing ({self.refresh_count}/{self.refresh_limit})"
        )
        self.token = self.token_provider()
        return self.token
