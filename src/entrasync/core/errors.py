"""Exception taxonomy and process exit codes."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes. Values are relied on by operators."""

    SUCCESS = 0
    AUTH_FAILURE = 101
    CONFIG_FETCH_FAILURE = 102
    VALIDATION_FAILURE = 103
    RESOLVE_FAILURE = 104
    ADD_FAILURE = 105
    REMOVE_FAILURE = 106
    UNCLASSIFIED = 300


# Most severe first
EXIT_CODE_SEVERITY: tuple[ExitCode, ...] = (
    ExitCode.AUTH_FAILURE,
    ExitCode.CONFIG_FETCH_FAILURE,
    ExitCode.UNCLASSIFIED,
    ExitCode.REMOVE_FAILURE,
    ExitCode.ADD_FAILURE,
    ExitCode.RESOLVE_FAILURE,
    ExitCode.VALIDATION_FAILURE,
    ExitCode.SUCCESS,
)


def most_severe(codes) -> ExitCode:
    """Return the most severe exit code, or SUCCESS for an empty input."""
    present = set(codes)
    for code in EXIT_CODE_SEVERITY:
        if code in present:
            return code
    return ExitCode.SUCCESS


class EntraSyncError(Exception):
    """Base class for all sync errors."""

    exit_code: ExitCode = ExitCode.UNCLASSIFIED


class AuthFailure(EntraSyncError):
    """Token acquisition failed."""

    exit_code = ExitCode.AUTH_FAILURE


class AuthExhausted(AuthFailure):
    """The token refresh ceiling was reached."""

    def __init__(self, refresh_count: int, url: str = "") -> None:
        self.refresh_count = refresh_count
        self.url = url
        super().__init__(
            f"Still unauthorized after {refresh_count} token refreshes"
            + (f" ({url})" if url else "")
        )


class ApiError(EntraSyncError):
    """A Graph request returned a non-success status."""

    def __init__(self, status_code: int, url: str, message: str = "") -> None:
        self.status_code = status_code
        self.url = url
        text = f"HTTP {status_code} from {url}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class BatchApplyError(ApiError):
    """A member add batch failed after earlier batches may have been applied.

    ``batch_index`` counts from 1, matching the batch numbers in the logs.
    """

    exit_code = ExitCode.ADD_FAILURE

    def __init__(self, batch_index: int, applied: int, status_code: int, url: str) -> None:
        self.batch_index = batch_index
        self.applied = applied
        super().__init__(
            status_code,
            url,
            f"batch {batch_index} failed ({applied} members already added)",
        )


class ConfigFetchError(EntraSyncError):
    """The run configuration could not be fetched or parsed."""

    exit_code = ExitCode.CONFIG_FETCH_FAILURE


class InvalidEntryError(EntraSyncError, ValueError):
    """A configuration record cannot be processed."""

    exit_code = ExitCode.VALIDATION_FAILURE


class InvalidFilterError(InvalidEntryError):
    """Device filter options are outside the allowed vocabularies."""


class EntryPhaseError(EntraSyncError):
    """Failure of a single entry phase, tagged with the phase's exit code."""

    def __init__(self, phase: str, exit_code: ExitCode, cause: Exception) -> None:
        self.phase = phase
        self.exit_code = exit_code
        self.cause = cause
        super().__init__(f"{phase} failed: {cause}")
