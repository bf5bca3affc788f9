"""Microsoft Graph directory API client.

Every request goes through ``_request``, which classifies the response and
handles the two recoverable outcomes: a rejected token is refreshed (within
the run-wide budget held by ``AuthContext``) and the same call is repeated,
and a missing object becomes an empty result.
"""

import logging
from collections.abc import Iterator, Sequence
from enum import Enum
from typing import Self

import httpx
from tenacity import (
    RetryError,
    retry,
    retry_if_result,
    stop_after_attempt,
    wait_exponential_jitter,
)

from entrasync.core.auth import AuthContext
from entrasync.core.constants import GRAPH_BASE_URL, MAX_BATCH_SIZE, PAGE_SIZE
from entrasync.core.errors import ApiError, BatchApplyError
from entrasync.entra.models import DeviceRecord, DirectoryGroup, GroupMember

logger = logging.getLogger(__name__)

# Throttling retry configuration
MAX_RETRIES = 5
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 30
THROTTLED_STATUSES = frozenset({429, 503, 504})

MEMBER_TYPES = ("user", "device")


class CallOutcome(Enum):
    """Classification of a completed Graph request."""

    OK = "ok"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


def classify_response(response: httpx.Response) -> CallOutcome:
    """Map an HTTP response to the outcome the retry loop acts on."""
    if response.is_success:
        return CallOutcome.OK
    if response.status_code == 401:
        return CallOutcome.UNAUTHORIZED
    if response.status_code == 404:
        return CallOutcome.NOT_FOUND
    return CallOutcome.FAILED


def _is_throttled(response: httpx.Response) -> bool:
    """Check if response indicates throttling."""
    return response.status_code in THROTTLED_STATUSES


def _log_retry(retry_state) -> None:
    """Log retry attempts."""
    logger.warning(f"Throttled by Graph, retry attempt {retry_state.attempt_number + 1}")


def _error_message(response: httpx.Response) -> str:
    """Extract the Graph error message from a failed response, if any."""
    try:
        return response.json().get("error", {}).get("message", "")
    except ValueError:
        return response.text[:200]


def chunked(items: Sequence[str], size: int) -> Iterator[list[str]]:
    """Yield consecutive slices of at most ``size`` items, preserving order."""
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class DirectoryClient:
    """Client for the Entra ID directory endpoints of Microsoft Graph."""

    def __init__(
        self,
        auth: AuthContext,
        base_url: str = GRAPH_BASE_URL,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            auth: Token holder shared by every request of the run
            base_url: Graph API root
            timeout: Per-request timeout in seconds
        """
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client: httpx.Client | None = None

    def __enter__(self) -> Self:
        """Enter context manager - create HTTP client."""
        self.client = httpx.Client(timeout=self.timeout)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - close HTTP client."""
        if self.client:
            self.client.close()
            self.client = None

    def _url(self, path: str) -> str:
        """Build an absolute URL; absolute URLs (next links) pass through."""
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self.base_url}{path}"

    @retry(
        retry=retry_if_result(_is_throttled),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        before_sleep=_log_retry,
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send one request with the current bearer token.

        Throttled responses (429/503/504) are retried with exponential backoff.
        """
        if not self.client:
            raise RuntimeError("Client must be used as context manager")

        headers = {"Authorization": f"Bearer {self.auth.get_token()}"}

        try:
            return self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(0, url, str(e)) from e

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response | None:
        """Make a Graph request, recovering from rejected tokens.

        Returns:
            The successful response, or None if the object was not found

        Raises:
            AuthExhausted: If the token refresh budget runs out
            ApiError: For any other non-success status
        """
        while True:
            try:
                response = self._send(method, url, **kwargs)
            except RetryError as e:
                last = e.last_attempt.result()
                logger.error(f"{method} {url} still throttled after {MAX_RETRIES} attempts")
                raise ApiError(last.status_code, url, "throttled") from e

            outcome = classify_response(response)

            if outcome is CallOutcome.OK:
                return response

            if outcome is CallOutcome.NOT_FOUND:
                logger.warning(f"Not found: {method} {url}")
                return None

            if outcome is CallOutcome.UNAUTHORIZED:
                logger.debug(f"Unauthorized: {method} {url}")
                self.auth.refresh(url)
                continue

            message = _error_message(response)
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(response.status_code, url, message)

    def iter_pages(self, path: str, params: dict | None = None) -> Iterator[list[dict]]:
        """Iterate over the pages of a collection, following ``@odata.nextLink``.

        Each call starts a fresh traversal. A missing collection yields nothing.
        """
        url: str | None = self._url(path)
        while url:
            response = self._request("GET", url, params=params)
            if response is None:
                return

            data = response.json()
            yield data.get("value", [])

            # The next link already carries the original query
            url = data.get("@odata.nextLink")
            params = None

    def get_group(self, group_id: str) -> DirectoryGroup | None:
        """Fetch a group's ID and display name.

        Returns:
            DirectoryGroup named by the server's displayName, or None if absent
        """
        response = self._request(
            "GET",
            self._url(f"/groups/{group_id}"),
            params={"$select": "id,displayName"},
        )
        if response is None:
            return None

        data = response.json()
        return DirectoryGroup(id=data.get("id", group_id), name=data.get("displayName") or "")

    def list_transitive_members(self, group_id: str, member_type: str) -> frozenset[str]:
        """Get the IDs of all users or devices in a group, including nested groups.

        Args:
            group_id: The group ID
            member_type: "user" or "device"

        Returns:
            Set of member object IDs
        """
        if member_type not in MEMBER_TYPES:
            raise ValueError(f"member_type must be one of {MEMBER_TYPES}, got {member_type!r}")

        path = f"/groups/{group_id}/transitiveMembers/microsoft.graph.{member_type}"
        members: set[str] = set()
        for page in self.iter_pages(path, params={"$select": "id", "$top": PAGE_SIZE}):
            members.update(item["id"] for item in page if item.get("id"))

        logger.debug(f"Group {group_id} has {len(members)} transitive {member_type} members")
        return frozenset(members)

    def list_group_members_all(self, group_id: str) -> list[GroupMember]:
        """Get every member of a group, direct and nested, of any type."""
        members = []
        for page in self.iter_pages(
            f"/groups/{group_id}/transitiveMembers", params={"$top": PAGE_SIZE}
        ):
            members.extend(GroupMember.from_api(item) for item in page)
        return members

    def list_user_owned_devices(self, user_id: str) -> list[DeviceRecord]:
        """Get the devices registered to a user."""
        devices = []
        for page in self.iter_pages(f"/users/{user_id}/ownedDevices/microsoft.graph.device"):
            devices.extend(DeviceRecord.from_api(item) for item in page)
        return devices

    def add_members(self, group_id: str, object_ids: Sequence[str]) -> int:
        """Add directory objects to a group in batches of at most 20.

        Batches are sent in order. When a batch fails, earlier batches stay
        applied and no further batches are sent.

        Returns:
            Number of members added

        Raises:
            BatchApplyError: If a batch fails, carrying its 1-based batch number
            AuthExhausted: If the token refresh budget runs out
        """
        url = self._url(f"/groups/{group_id}")
        batches = list(chunked(object_ids, MAX_BATCH_SIZE))
        applied = 0

        for index, batch in enumerate(batches, start=1):
            body = {
                "members@odata.bind": [
                    f"{self.base_url}/directoryObjects/{object_id}" for object_id in batch
                ]
            }
            try:
                response = self._request("PATCH", url, json=body)
            except ApiError as e:
                logger.error(f"Batch {index}/{len(batches)} failed for group {group_id}")
                raise BatchApplyError(index, applied, e.status_code, url) from e

            if response is None:
                raise BatchApplyError(index, applied, 404, url)

            applied += len(batch)
            logger.info(
                f"Added batch {index}/{len(batches)} ({len(batch)} members) "
                f"to group {group_id}"
            )

        return applied

    def remove_member(self, group_id: str, object_id: str) -> bool:
        """Remove a direct member from a group.

        Members that are only present through a nested group cannot be
        removed this way; Graph answers 404 and nothing changes.

        Returns:
            True if removed, False if it was not a direct member
        """
        response = self._request(
            "DELETE", self._url(f"/groups/{group_id}/members/{object_id}/$ref")
        )
        if response is None:
            logger.warning(f"{object_id} is not a direct member of group {group_id}, not removed")
            return False

        logger.info(f"Removed {object_id} from group {group_id}")
        return True
