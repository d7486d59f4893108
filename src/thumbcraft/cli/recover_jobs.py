"""CLI command for failing generation jobs orphaned by a crashed process.

Usage:
    python -m thumbcraft.cli.recover_jobs [OPTIONS]

Examples:
    # Mark every pending/generating job as failed/interrupted
    python -m thumbcraft.cli.recover_jobs

    # List orphaned jobs without database writes
    python -m thumbcraft.cli.recover_jobs --dry-run

    # Verbose logging
    python -m thumbcraft.cli.recover_jobs -v

Only run this while the API server is stopped; live jobs would otherwise be
marked as interrupted.
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog

from thumbcraft.core import timezone  # noqa: F401
from thumbcraft.core.config import Settings, configure_logging
from thumbcraft.core.database import setup_db_session
from thumbcraft.uow import create_uow_factory
from thumbcraft.workers.generation_worker import recover_orphaned_jobs

logger = structlog.get_logger()


def parse_args() -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Fail generation jobs left pending/generating by a crashed process",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List orphaned jobs without database writes",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


async def async_main() -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error)
    """
    args = parse_args()

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    logger.info("cli.started", dry_run=args.dry_run)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    try:
        if args.dry_run:
            async with await uow_factory() as uow:
                jobs = await uow.generation_jobs.list_unfinished()

            print("\n" + "=" * 60)
            print(f"Orphaned jobs: {len(jobs)}")
            for job in jobs[:20]:
                print(f"  - {job.id} [{job.status.value}] owner={job.owner_id} {job.created_at}")
            if len(jobs) > 20:
                print(f"  ... and {len(jobs) - 20} more")
            print("\n[DRY RUN] No changes were persisted to database")
            print("=" * 60 + "\n")
            return 0

        recovered = await recover_orphaned_jobs(uow_factory)
        print(f"\nJobs marked failed/interrupted: {recovered}\n")
        logger.info("cli.success", recovered=recovered)
        return 0

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nRecovery interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """Synchronous entry point for CLI."""
    return asyncio.run(async_main())


if __name__ == "__main__":
    sys.exit(main())
