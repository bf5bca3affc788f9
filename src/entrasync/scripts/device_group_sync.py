"""CLI script to sync device groups from the devices owned by user group members.

For each configuration record, the devices owned by the (transitive) members
of the user group are filtered by operating system, trust type, compliance and
enabled state, and the device group is reconciled to exactly that set.

Configuration records:
    UserAzureADGroupId, UserAzureADGroupName,
    DeviceAzureADGroupId, DeviceAzureADGroupName,
    OSList (optional, e.g. "Windows,MacOS"),
    TrustTypeList (optional, e.g. "AzureAd,ServerAd"),
    isCompliant (optional, "Yes"/"No"),
    accountEnabled (optional, "Yes"/"No")
"""

import argparse
import logging
import sys

from entrasync.core.config import get_config_url
from entrasync.sync.entries import DeviceGroupEntry
from entrasync.sync.runner import run_sync

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

# Silence verbose HTTP request logging
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("azure.identity").setLevel(logging.WARNING)
logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(logging.WARNING)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Sync Entra ID device groups from user group device ownership",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=str,
        help="URL or path of the configuration JSON (default: ENTRASYNC_CONFIG_URL)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without making changes",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.dry_run:
        logger.info("DRY RUN - no changes will be made")

    return run_sync(DeviceGroupEntry, args.config or get_config_url(), dry_run=args.dry_run)


if __name__ == "__main__":
    sys.exit(main())
