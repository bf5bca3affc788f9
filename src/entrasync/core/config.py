"""Configuration loading utilities."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from entrasync.core.constants import DEFAULT_REFRESH_LIMIT


@dataclass(frozen=True)
class GraphCredentials:
    """App registration credentials for the client-credentials flow.

    Exactly one of client_secret or certificate_path is used; the secret
    wins when both are present.
    """

    tenant_id: str
    client_id: str
    client_secret: str | None = None
    certificate_path: str | None = None
    certificate_password: str | None = None

    @property
    def uses_certificate(self) -> bool:
        """True when authenticating with a certificate instead of a secret."""
        return not self.client_secret and bool(self.certificate_path)


def get_graph_credentials() -> GraphCredentials:
    """Get MS Graph API credentials from environment.

    Environment variables:
        MS_GRAPH_TENANT_ID: Tenant ID
        MS_GRAPH_CLIENT_ID: App registration client ID
        MS_GRAPH_CLIENT_SECRET: Client secret
        MS_GRAPH_CERTIFICATE_PATH: PEM/PFX certificate (used when no secret is set)
        MS_GRAPH_CERTIFICATE_PASSWORD: Password for the certificate file

    Returns:
        GraphCredentials

    Raises:
        ValueError: If any required credential is not set
    """
    load_dotenv()

    tenant_id = os.getenv("MS_GRAPH_TENANT_ID")
    client_id = os.getenv("MS_GRAPH_CLIENT_ID")
    client_secret = os.getenv("MS_GRAPH_CLIENT_SECRET")
    cert_path = os.getenv("MS_GRAPH_CERTIFICATE_PATH")

    if not tenant_id or not client_id:
        raise ValueError(
            "MS Graph credentials not set. Required: MS_GRAPH_TENANT_ID, MS_GRAPH_CLIENT_ID"
        )

    if not client_secret and not cert_path:
        raise ValueError(
            "MS Graph credentials not set. Required: "
            "MS_GRAPH_CLIENT_SECRET or MS_GRAPH_CERTIFICATE_PATH"
        )

    return GraphCredentials(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret or None,
        certificate_path=cert_path or None,
        certificate_password=os.getenv("MS_GRAPH_CERTIFICATE_PASSWORD"),
    )


def get_config_url() -> str | None:
    """Get the location of the sync configuration JSON from environment."""
    load_dotenv()
    return os.getenv("ENTRASYNC_CONFIG_URL") or None


def get_refresh_limit() -> int:
    """Get the token refresh ceiling.

    Reads ``ENTRASYNC_REFRESH_LIMIT``, falling back to the default of 24.

    Raises:
        ValueError: If the variable is set but is not a non-negative integer
    """
    load_dotenv()

    raw = os.getenv("ENTRASYNC_REFRESH_LIMIT")
    if not raw:
        return DEFAULT_REFRESH_LIMIT

    try:
        limit = int(raw)
    except ValueError:
        raise ValueError(f"ENTRASYNC_REFRESH_LIMIT must be an integer, got {raw!r}") from None

    if limit < 0:
        raise ValueError(f"ENTRASYNC_REFRESH_LIMIT must not be negative, got {limit}")
    return limit
