"""Maintenance scheduler — periodic due/overdue scans that feed the hub.

Every tick runs two scans over all organizations:

  due:      plan.next_maintenance_date <= today
            → create a pending MaintenanceTask, advance the plan, commit
            → broadcast maintenance_due
  overdue:  open task with scheduled_date < today
            → status = overdue, commit
            → broadcast maintenance_overdue

Each plan / task is written in its own repository scope, so one bad row
rolls back alone and the scan moves on. Advancing the plan in the same
transaction as the task insert keeps a second tick on the same day from
creating a duplicate task. There is no retry: the next tick re-queries.

A plan that missed several periods gets one task, dated on the missed
next_maintenance_date, and then jumps to its next future slot. The overdue
scan in the same tick sees that task as past due, so clients receive
maintenance_due followed by maintenance_overdue for it.

Runs as a background task in the FastAPI lifespan, and once on demand from
`assetsentinel scan`.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from assetsentinel.config import settings
from assetsentinel.db.models import TASK_OVERDUE, TASK_PENDING, MaintenanceTask
from assetsentinel.db.repository import open_repository as default_open_repository
from assetsentinel.events.types import MaintenanceDue, MaintenanceOverdue
from assetsentinel.realtime.hub import Hub

logger = structlog.get_logger()


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def next_due_date(current: date, frequency_days: int, today: date) -> date:
    """First date on the plan's cadence strictly after `today`."""
    step = max(1, frequency_days)
    if current > today:
        return current
    periods = (today - current).days // step + 1
    return current + timedelta(days=periods * step)


@dataclass
class ScanSummary:
    organizations_scanned: int = 0
    tasks_created: int = 0
    tasks_overdue: int = 0
    errors: int = 0

    def merge(self, other: "ScanSummary") -> "ScanSummary":
        return ScanSummary(
            organizations_scanned=max(self.organizations_scanned, other.organizations_scanned),
            tasks_created=self.tasks_created + other.tasks_created,
            tasks_overdue=self.tasks_overdue + other.tasks_overdue,
            errors=self.errors + other.errors,
        )


class MaintenanceScheduler:
    """Background worker that turns the calendar into tasks and events.

    Usage:
        scheduler = MaintenanceScheduler(hub)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        hub: Optional[Hub],
        open_repository=default_open_repository,
        interval: Optional[float] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.hub = hub
        self.open_repository = open_repository
        self.interval = interval if interval is not None else settings.scheduler_interval_seconds
        self.today = today or _utc_today
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run_loop(), name="scheduler.loop")

    async def stop(self) -> None:
        """Signal the loop and wait for it; an in-flight tick completes first."""
        if self._task is None:
            return
        self._stop.set()
        logger.info("scheduler.stopping")
        await self._task
        self._task = None

    async def _run_loop(self) -> None:
        logger.info("scheduler.started", interval=self.interval)
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                try:
                    await self.run_once()
                except Exception:
                    logger.exception("scheduler.tick_failed")
        logger.info("scheduler.stopped")

    # ─── Tick ────────────────────────────────────────────

    async def run_once(self) -> ScanSummary:
        """One tick: due scan, then overdue scan."""
        summary = (await self.check_maintenance_due()).merge(await self.check_overdue_tasks())
        logger.info("scheduler.tick_completed", **asdict(summary))
        return summary

    async def _organization_ids(self, summary: ScanSummary) -> list[int]:
        try:
            async with self.open_repository() as repo:
                orgs = await repo.list_organizations()
        except Exception:
            logger.exception("scheduler.list_organizations_failed")
            summary.errors += 1
            return []
        summary.organizations_scanned = len(orgs)
        return [org.id for org in orgs]

    async def check_maintenance_due(self) -> ScanSummary:
        summary = ScanSummary()
        today = self.today()
        for org_id in await self._organization_ids(summary):
            try:
                async with self.open_repository() as repo:
                    plans = await repo.get_maintenance_plans_due(org_id, today)
            except Exception:
                logger.exception("scheduler.fetch_due_failed", organization_id=org_id)
                summary.errors += 1
                continue

            for plan in plans:
                scheduled = plan.next_maintenance_date
                try:
                    async with self.open_repository() as repo:
                        try:
                            task = await repo.create_maintenance_task(
                                MaintenanceTask(
                                    organization_id=org_id,
                                    maintenance_plan_id=plan.id,
                                    asset_id=plan.asset_id,
                                    scheduled_date=scheduled,
                                    status=TASK_PENDING,
                                )
                            )
                            await repo.advance_maintenance_plan(
                                org_id, plan.id, next_due_date(scheduled, plan.frequency_days, today)
                            )
                            await repo.commit()
                        except Exception:
                            await repo.rollback()
                            raise
                except Exception:
                    logger.exception(
                        "scheduler.plan_failed", organization_id=org_id, plan_id=plan.id
                    )
                    summary.errors += 1
                    continue

                summary.tasks_created += 1
                self._notify(
                    MaintenanceDue(
                        organization_id=org_id,
                        plan_id=plan.id,
                        task_id=task.id,
                        asset_id=plan.asset_id,
                        scheduled_date=scheduled,
                    )
                )
        return summary

    async def check_overdue_tasks(self) -> ScanSummary:
        summary = ScanSummary()
        today = self.today()
        for org_id in await self._organization_ids(summary):
            try:
                async with self.open_repository() as repo:
                    tasks = await repo.get_overdue_maintenance_tasks(org_id, today)
            except Exception:
                logger.exception("scheduler.fetch_overdue_failed", organization_id=org_id)
                summary.errors += 1
                continue

            for task in tasks:
                previous = task.status
                try:
                    async with self.open_repository() as repo:
                        try:
                            task.status = TASK_OVERDUE
                            await repo.update_maintenance_task(task)
                            await repo.commit()
                        except Exception:
                            await repo.rollback()
                            raise
                except Exception:
                    task.status = previous
                    logger.exception(
                        "scheduler.task_failed", organization_id=org_id, task_id=task.id
                    )
                    summary.errors += 1
                    continue

                summary.tasks_overdue += 1
                self._notify(
                    MaintenanceOverdue(
                        organization_id=org_id,
                        task_id=task.id,
                        plan_id=task.maintenance_plan_id,
                        asset_id=task.asset_id,
                        scheduled_date=task.scheduled_date,
                    )
                )
        return summary

    def _notify(self, event) -> None:
        if self.hub is None:
            return
        try:
            self.hub.broadcast(event)
        except Exception:
            logger.exception("scheduler.notify_failed", event_type=event.type)
