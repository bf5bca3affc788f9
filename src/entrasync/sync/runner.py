"""Run orchestration: process configuration entries in order.

Each entry goes through validate -> resolve -> diff -> apply -> report.
Failures are scoped to the entry, except for authentication failures,
which end the run.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from entrasync.core.auth import AuthContext
from entrasync.core.config import get_graph_credentials, get_refresh_limit
from entrasync.core.errors import (
    ApiError,
    AuthFailure,
    ConfigFetchError,
    EntryPhaseError,
    ExitCode,
    InvalidEntryError,
    most_severe,
)
from entrasync.entra.client import DirectoryClient
from entrasync.entra.reconcile import apply_plan, build_plan
from entrasync.entra.resolver import MembershipResolver
from entrasync.entra.validator import GroupValidator
from entrasync.sync.entries import RunEntry, load_records

logger = logging.getLogger(__name__)


class EntryStatus(Enum):
    """Outcome of a single entry."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class EntrySyncResult:
    """Result of processing one configuration entry."""

    label: str
    status: EntryStatus
    exit_code: ExitCode = ExitCode.SUCCESS
    members_added: list[str] = field(default_factory=list)
    members_removed: list[str] = field(default_factory=list)
    not_removed: list[str] = field(default_factory=list)
    reason: str | None = None
    elapsed: float = 0.0

    @property
    def has_changes(self) -> bool:
        """Check if any changes were made (or planned, in a dry run)."""
        return bool(self.members_added) or bool(self.members_removed)


@dataclass
class RunResult:
    """Result of a full run."""

    entries: list[EntrySyncResult] = field(default_factory=list)
    aborted: bool = False
    fatal_error: str | None = None

    @property
    def total_added(self) -> int:
        """Count of members added across all entries."""
        return sum(len(e.members_added) for e in self.entries)

    @property
    def total_removed(self) -> int:
        """Count of members removed across all entries."""
        return sum(len(e.members_removed) for e in self.entries)

    @property
    def total_skipped(self) -> int:
        """Count of skipped entries."""
        return sum(1 for e in self.entries if e.status is EntryStatus.SKIPPED)

    @property
    def total_failed(self) -> int:
        """Count of failed entries."""
        return sum(1 for e in self.entries if e.status is EntryStatus.FAILED)

    @property
    def exit_code(self) -> ExitCode:
        """Most severe condition of the run."""
        if self.aborted:
            return ExitCode.AUTH_FAILURE
        return most_severe(e.exit_code for e in self.entries)


@contextmanager
def _phase(name: str, exit_code: ExitCode) -> Iterator[None]:
    """Tag API errors raised inside a phase with that phase's exit code."""
    try:
        yield
    except ApiError as e:
        code = exit_code if e.exit_code is ExitCode.UNCLASSIFIED else e.exit_code
        raise EntryPhaseError(name, code, e) from e


class SyncRunner:
    """Process configuration entries against the directory."""

    def __init__(self, client: DirectoryClient, dry_run: bool = False) -> None:
        """Initialize the runner.

        Args:
            client: Open directory client
            dry_run: If True, compute and report plans without applying them
        """
        self.client = client
        self.dry_run = dry_run
        self.validator = GroupValidator(client)
        self.resolver = MembershipResolver(client)

    def run(self, records: list[dict], entry_type: type[RunEntry]) -> RunResult:
        """Process every record in order.

        Args:
            records: Configuration records
            entry_type: Entry class used to parse the records

        Returns:
            RunResult; ``aborted`` is set when authentication failed
        """
        result = RunResult()

        for index, record in enumerate(records, start=1):
            try:
                entry_result = self.process_record(record, entry_type, index)
            except AuthFailure as e:
                logger.critical(f"Authentication failed, aborting run at entry {index}: {e}")
                result.aborted = True
                result.fatal_error = str(e)
                break
            result.entries.append(entry_result)

        return result

    def process_record(
        self, record: dict, entry_type: type[RunEntry], index: int
    ) -> EntrySyncResult:
        """Parse and sync one record, containing any non-authentication failure.

        Raises:
            AuthFailure: If authentication failed or the refresh budget ran out
        """
        start = time.monotonic()

        try:
            entry = entry_type.from_record(record)
        except InvalidEntryError as e:
            logger.warning(f"Skipping entry {index}: {e}")
            return EntrySyncResult(
                label=f"entry {index}",
                status=EntryStatus.SKIPPED,
                exit_code=ExitCode.VALIDATION_FAILURE,
                reason=str(e),
                elapsed=time.monotonic() - start,
            )
        except Exception as e:
            logger.exception(f"Entry {index}: unexpected error while parsing record")
            return EntrySyncResult(
                label=f"entry {index}",
                status=EntryStatus.FAILED,
                exit_code=ExitCode.UNCLASSIFIED,
                reason=f"{type(e).__name__}: {e}",
                elapsed=time.monotonic() - start,
            )

        logger.info(f"Processing entry {index}: {entry.label}")

        try:
            result = self.sync_entry(entry)
        except AuthFailure:
            raise
        except EntryPhaseError as e:
            logger.error(f"{entry.label}: {e}")
            result = EntrySyncResult(
                label=entry.label,
                status=EntryStatus.FAILED,
                exit_code=e.exit_code,
                reason=str(e),
            )
        except Exception as e:
            logger.exception(f"{entry.label}: unexpected error")
            result = EntrySyncResult(
                label=entry.label,
                status=EntryStatus.FAILED,
                exit_code=ExitCode.UNCLASSIFIED,
                reason=f"{type(e).__name__}: {e}",
            )

        result.elapsed = time.monotonic() - start
        logger.info(f"Finished {entry.label} in {result.elapsed:.1f}s")
        return result

    def sync_entry(self, entry: RunEntry) -> EntrySyncResult:
        """Validate, resolve, diff and apply a single entry.

        Raises:
            EntryPhaseError: If a directory call fails during a phase
            AuthFailure: If authentication failed or the refresh budget ran out
        """
        with _phase("validate", ExitCode.VALIDATION_FAILURE):
            invalid = [g for g in entry.groups if not self.validator.validate(g)]

        if invalid:
            reason = "group not found or name mismatch: " + ", ".join(
                f"{g.name} ({g.id})" for g in invalid
            )
            logger.warning(f"Skipping {entry.label}: {reason}")
            return EntrySyncResult(
                label=entry.label,
                status=EntryStatus.SKIPPED,
                exit_code=ExitCode.VALIDATION_FAILURE,
                reason=reason,
            )

        with _phase("resolve", ExitCode.RESOLVE_FAILURE):
            desired = entry.resolve_desired(self.resolver)
            current = entry.resolve_current(self.resolver)

        plan = build_plan(entry.policy, desired, current)
        logger.info(
            f"{entry.label}: {len(desired)} desired, {len(current)} current, "
            f"{len(plan.to_add)} to add, {len(plan.to_remove)} to remove"
        )

        if self.dry_run:
            for object_id in sorted(plan.to_add):
                logger.info(f"Would add {object_id} to {entry.destination.name}")
            for object_id in sorted(plan.to_remove):
                logger.info(f"Would remove {object_id} from {entry.destination.name}")
            return EntrySyncResult(
                label=entry.label,
                status=EntryStatus.SYNCED,
                members_added=sorted(plan.to_add),
                members_removed=sorted(plan.to_remove),
            )

        with _phase("apply", ExitCode.REMOVE_FAILURE):
            applied = apply_plan(self.client, entry.destination.id, plan)

        return EntrySyncResult(
            label=entry.label,
            status=EntryStatus.SYNCED,
            members_added=applied.added,
            members_removed=applied.removed,
            not_removed=applied.not_removed,
        )


def log_run_summary(result: RunResult, dry_run: bool = False) -> None:
    """Log per-entry results and run totals."""
    logger.info("")
    logger.info("=" * 60)
    logger.info("Sync Results" + (" (dry run)" if dry_run else ""))
    logger.info("=" * 60)

    for entry in result.entries:
        if entry.status is EntryStatus.SKIPPED:
            logger.warning(f"\n{entry.label}:")
            logger.warning(f"  SKIPPED: {entry.reason}")
            continue

        if entry.status is EntryStatus.FAILED:
            logger.error(f"\n{entry.label}:")
            logger.error(f"  FAILED ({entry.exit_code.value}): {entry.reason}")
            continue

        logger.info(f"\n{entry.label}:")
        if entry.members_added:
            action = "Would add" if dry_run else "Added"
            logger.info(f"  {action}: {len(entry.members_added)}")
        if entry.members_removed:
            action = "Would remove" if dry_run else "Removed"
            logger.info(f"  {action}: {len(entry.members_removed)}")
        if entry.not_removed:
            logger.warning(f"  Not removed (nested membership): {len(entry.not_removed)}")
        if not entry.has_changes:
            logger.info("  No changes needed")
        logger.info(f"  Elapsed: {entry.elapsed:.1f}s")

    logger.info("")
    logger.info("-" * 60)
    logger.info("Summary:")
    logger.info(f"  Entries processed: {len(result.entries)}")
    logger.info(f"  Members added: {result.total_added}")
    logger.info(f"  Members removed: {result.total_removed}")
    if result.total_skipped:
        logger.warning(f"  Entries skipped: {result.total_skipped}")
    if result.total_failed:
        logger.error(f"  Entries failed: {result.total_failed}")
    if result.aborted:
        logger.critical(f"  Run aborted: {result.fatal_error}")
    logger.info(f"  Exit code: {result.exit_code.value}")


def run_sync(entry_type: type[RunEntry], config_source: str | None, dry_run: bool = False) -> int:
    """Load credentials and configuration, then process every entry.

    Args:
        entry_type: Entry class for the records being synced
        config_source: URL or path of the configuration JSON
        dry_run: If True, don't make changes

    Returns:
        Process exit code
    """
    start = time.monotonic()

    try:
        credentials = get_graph_credentials()
        refresh_limit = get_refresh_limit()
    except ValueError as e:
        logger.error(f"Error: {e}")
        return ExitCode.AUTH_FAILURE

    auth = AuthContext.from_credentials(credentials, refresh_limit=refresh_limit)
    try:
        auth.get_token()
    except AuthFailure as e:
        logger.error(f"Error: {e}")
        return ExitCode.AUTH_FAILURE

    if not config_source:
        logger.error("Error: no configuration source (use --config or ENTRASYNC_CONFIG_URL)")
        return ExitCode.CONFIG_FETCH_FAILURE

    try:
        records = load_records(config_source)
    except ConfigFetchError as e:
        logger.error(f"Error: {e}")
        return ExitCode.CONFIG_FETCH_FAILURE

    with DirectoryClient(auth) as client:
        result = SyncRunner(client, dry_run=dry_run).run(records, entry_type)

    log_run_summary(result, dry_run=dry_run)
    logger.info(f"Total time: {time.monotonic() - start:.1f}s")
    return result.exit_code
