"""Run one scheduler pass: due scheduled workflows, then due data syncs and their cascades.

Usage:
    python -m scripts.run_scheduler_tick [--health]
Meant to be called from cron (e.g. every 5 minutes). With --health, prints
how much work is due without running anything.
Exits 1 when any workflow or sync in the pass reported an error.
"""

import asyncio
import sys

import automation.infrastructure.persistence.database as database
from automation.core.config import get_settings
from automation.infrastructure.external.data_sync.http_runner import (
    build_data_sync_runner,
)
from automation.infrastructure.services.scheduler_service import SchedulerService
from automation.shared.telemetry.logging import setup_logging


async def main() -> int:
    """Run the pass and print a one-line-per-item summary."""
    settings = get_settings()
    setup_logging()
    session_factory = database.get_session_factory()
    scheduler = SchedulerService.from_settings(
        settings, session_factory, sync_runner=build_data_sync_runner(settings)
    )
    try:
        if "--health" in sys.argv[1:]:
            health = await scheduler.get_health()
            print(
                f"{health.timestamp.isoformat()}: {health.workflows_due} workflow(s) due, "
                f"{health.syncs_due} sync(s) due"
            )
            return 0

        summary = await scheduler.run_due_work()
        for w in summary.workflows:
            state = w.status.value if w.status else (w.skipped_reason or "not run")
            print(f"workflow {w.workflow_id} ({w.name}): {state}")
            if w.error:
                print(f"  error: {w.error}", file=sys.stderr)
        for s in summary.data_syncs:
            print(
                f"sync {s.schedule_id} ({s.name}): success={s.success} "
                f"fetched={s.records_fetched} triggered={len(s.triggered_workflows)}"
            )
            if s.error:
                print(f"  error: {s.error}", file=sys.stderr)
        print(
            f"Done. Workflows executed: {summary.workflows_executed}, "
            f"syncs executed: {summary.syncs_executed}, errors: {summary.errors}"
        )
        return 1 if summary.errors else 0
    finally:
        await database.dispose_engine()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
