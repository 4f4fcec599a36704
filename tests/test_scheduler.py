"""Maintenance scheduler tests — due/overdue scans against the in-memory store."""

import asyncio
from datetime import date, timedelta

import pytest

from assetsentinel.db.models import MaintenancePlan, MaintenanceTask
from assetsentinel.services.scheduler import MaintenanceScheduler, next_due_date

from conftest import RecordingHub

TODAY = date(2024, 6, 15)


def _plan(store, org_id=1, next_date=TODAY, frequency_days=30, asset_id=100):
    plan = MaintenancePlan(
        id=store.next_id(),
        organization_id=org_id,
        asset_id=asset_id,
        frequency_days=frequency_days,
        next_maintenance_date=next_date,
    )
    store.plans[plan.id] = plan
    return plan


def _task(store, org_id=1, scheduled=TODAY - timedelta(days=1), status="pending", plan_id=1):
    task = MaintenanceTask(
        id=store.next_id(),
        organization_id=org_id,
        maintenance_plan_id=plan_id,
        asset_id=100,
        scheduled_date=scheduled,
        status=status,
    )
    store.tasks[task.id] = task
    return task


def _scheduler(hub, open_repository, **kwargs):
    return MaintenanceScheduler(hub, open_repository=open_repository, today=lambda: TODAY, **kwargs)


# ─── Cadence math ─────────────────────────────────────────


def test_next_due_date_is_strictly_after_today():
    assert next_due_date(TODAY, 30, TODAY) == TODAY + timedelta(days=30)
    # Missed three periods: catch up to the first future slot on the cadence
    start = TODAY - timedelta(days=70)
    assert next_due_date(start, 30, TODAY) == start + timedelta(days=90)
    assert next_due_date(TODAY + timedelta(days=5), 30, TODAY) == TODAY + timedelta(days=5)


def test_next_due_date_tolerates_zero_frequency():
    assert next_due_date(TODAY, 0, TODAY) == TODAY + timedelta(days=1)


# ─── Due scan ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_due_plan_creates_task_and_broadcasts(store, open_repository, recording_hub):
    store.add_organization(1)
    plan = _plan(store)

    summary = await _scheduler(recording_hub, open_repository).check_maintenance_due()

    assert summary.tasks_created == 1
    assert summary.errors == 0
    tasks = list(store.tasks.values())
    assert len(tasks) == 1
    assert tasks[0].status == "pending"
    assert tasks[0].scheduled_date == TODAY
    assert tasks[0].maintenance_plan_id == plan.id
    assert plan.next_maintenance_date == TODAY + timedelta(days=30)

    (event,) = recording_hub.of_type("maintenance_due")
    assert event.organization_id == 1
    assert event.plan_id == plan.id
    assert event.task_id == tasks[0].id
    assert event.scheduled_date == TODAY


@pytest.mark.asyncio
async def test_second_scan_same_day_creates_no_duplicates(store, open_repository, recording_hub):
    store.add_organization(1)
    _plan(store)
    scheduler = _scheduler(recording_hub, open_repository)

    await scheduler.check_maintenance_due()
    second = await scheduler.check_maintenance_due()

    assert second.tasks_created == 0
    assert len(store.tasks) == 1
    assert len(recording_hub.of_type("maintenance_due")) == 1


@pytest.mark.asyncio
async def test_future_plans_are_left_alone(store, open_repository, recording_hub):
    store.add_organization(1)
    plan = _plan(store, next_date=TODAY + timedelta(days=1))

    summary = await _scheduler(recording_hub, open_repository).check_maintenance_due()

    assert summary.tasks_created == 0
    assert store.tasks == {}
    assert plan.next_maintenance_date == TODAY + timedelta(days=1)


@pytest.mark.asyncio
async def test_failed_plan_rolls_back_alone(store, open_repository, recording_hub):
    store.add_organization(1)
    bad = _plan(store, asset_id=1)
    good = _plan(store, asset_id=2)
    store.fail_plan_ids.add(bad.id)

    summary = await _scheduler(recording_hub, open_repository).check_maintenance_due()

    assert summary.tasks_created == 1
    assert summary.errors == 1
    assert store.rollbacks == 1
    assert bad.next_maintenance_date == TODAY
    assert good.next_maintenance_date == TODAY + timedelta(days=30)
    assert [e.plan_id for e in recording_hub.events] == [good.id]


@pytest.mark.asyncio
async def test_each_organization_gets_its_own_events(store, open_repository, recording_hub):
    store.add_organization(1)
    store.add_organization(2)
    _plan(store, org_id=1)
    _plan(store, org_id=2)

    summary = await _scheduler(recording_hub, open_repository).check_maintenance_due()

    assert summary.organizations_scanned == 2
    assert sorted(e.organization_id for e in recording_hub.events) == [1, 2]
    assert {t.organization_id for t in store.tasks.values()} == {1, 2}


@pytest.mark.asyncio
async def test_broadcast_failure_keeps_the_write(store, open_repository):
    store.add_organization(1)
    plan = _plan(store)

    summary = await _scheduler(RecordingHub(fail=True), open_repository).check_maintenance_due()

    assert summary.tasks_created == 1
    assert len(store.tasks) == 1
    assert plan.next_maintenance_date == TODAY + timedelta(days=30)


@pytest.mark.asyncio
async def test_listing_organizations_failure_is_counted(store, open_repository, recording_hub):
    store.add_organization(1)
    _plan(store)
    store.fail_organizations = True

    summary = await _scheduler(recording_hub, open_repository).run_once()

    assert summary.errors == 2  # once per scan
    assert store.tasks == {}
    assert recording_hub.events == []


@pytest.mark.asyncio
async def test_one_organization_failing_its_fetch_does_not_stop_the_rest(
    store, open_repository, recording_hub
):
    store.add_organization(1)
    store.add_organization(2)
    stuck_plan = _plan(store, org_id=1)
    stuck_task = _task(store, org_id=1)
    healthy_plan = _plan(store, org_id=2)
    healthy_task = _task(store, org_id=2)
    store.fail_fetch_org_ids.add(1)

    summary = await _scheduler(recording_hub, open_repository).run_once()

    assert summary.errors == 2
    assert summary.tasks_created == 1
    assert summary.tasks_overdue == 1
    created = [t for t in store.tasks.values() if t.scheduled_date == TODAY]
    assert [t.organization_id for t in created] == [2]
    assert healthy_task.status == "overdue"
    assert healthy_plan.next_maintenance_date == TODAY + timedelta(days=30)
    assert stuck_task.status == "pending"
    assert stuck_plan.next_maintenance_date == TODAY
    assert {e.organization_id for e in recording_hub.events} == {2}


@pytest.mark.asyncio
async def test_missed_periods_produce_one_task_then_overdue(store, open_repository, recording_hub):
    store.add_organization(1)
    missed = TODAY - timedelta(days=70)
    plan = _plan(store, next_date=missed)

    summary = await _scheduler(recording_hub, open_repository).run_once()

    assert summary.tasks_created == 1
    assert summary.tasks_overdue == 1
    (task,) = store.tasks.values()
    assert task.scheduled_date == missed
    assert task.status == "overdue"
    assert plan.next_maintenance_date == missed + timedelta(days=90)
    assert [e.type for e in recording_hub.events] == ["maintenance_due", "maintenance_overdue"]


# ─── Overdue scan ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_open_past_tasks_become_overdue(store, open_repository, recording_hub):
    store.add_organization(1)
    pending = _task(store, status="pending")
    started = _task(store, status="in_progress", scheduled=TODAY - timedelta(days=10))
    done = _task(store, status="completed")
    today_task = _task(store, scheduled=TODAY)

    summary = await _scheduler(recording_hub, open_repository).check_overdue_tasks()

    assert summary.tasks_overdue == 2
    assert pending.status == "overdue"
    assert started.status == "overdue"
    assert done.status == "completed"
    assert today_task.status == "pending"
    assert sorted(e.task_id for e in recording_hub.of_type("maintenance_overdue")) == sorted(
        [pending.id, started.id]
    )


@pytest.mark.asyncio
async def test_overdue_is_reported_once(store, open_repository, recording_hub):
    store.add_organization(1)
    _task(store)
    scheduler = _scheduler(recording_hub, open_repository)

    await scheduler.check_overdue_tasks()
    second = await scheduler.check_overdue_tasks()

    assert second.tasks_overdue == 0
    assert len(recording_hub.events) == 1


@pytest.mark.asyncio
async def test_failed_task_update_is_skipped(store, open_repository, recording_hub):
    store.add_organization(1)
    bad = _task(store)
    good = _task(store)
    store.fail_task_ids.add(bad.id)

    summary = await _scheduler(recording_hub, open_repository).check_overdue_tasks()

    assert summary.errors == 1
    assert bad.status == "pending"
    assert good.status == "overdue"


# ─── Loop ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_run_once_without_hub(store, open_repository):
    store.add_organization(1)
    _plan(store)
    _task(store)

    summary = await _scheduler(None, open_repository).run_once()

    assert summary.tasks_created == 1
    assert summary.tasks_overdue == 1


@pytest.mark.asyncio
async def test_loop_ticks_until_stopped(store, open_repository, recording_hub, eventually):
    store.add_organization(1)
    _plan(store)
    scheduler = _scheduler(recording_hub, open_repository, interval=0.01)

    scheduler.start()
    scheduler.start()
    await eventually(lambda: len(store.tasks) == 1)
    await scheduler.stop()

    assert not scheduler.running
    assert len(recording_hub.of_type("maintenance_due")) == 1


@pytest.mark.asyncio
async def test_stop_lets_an_in_flight_tick_finish(store, open_repository, recording_hub):
    store.add_organization(1)
    _plan(store)
    store.fetch_gate = asyncio.Event()
    scheduler = _scheduler(recording_hub, open_repository, interval=0.01)

    scheduler.start()
    await asyncio.wait_for(store.fetch_started.wait(), timeout=2.0)
    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0.02)
    assert not stopping.done()

    store.fetch_gate.set()
    await asyncio.wait_for(stopping, timeout=2.0)

    assert not scheduler.running
    assert len(store.tasks) == 1
    assert len(recording_hub.of_type("maintenance_due")) == 1


@pytest.mark.asyncio
async def test_stop_before_first_tick(store, open_repository, recording_hub):
    store.add_organization(1)
    _plan(store)
    scheduler = _scheduler(recording_hub, open_repository, interval=3600)

    scheduler.start()
    await asyncio.sleep(0)
    await asyncio.wait_for(scheduler.stop(), timeout=1.0)

    assert store.tasks == {}
