"""Auto-refresh scheduler: countdown math and the single-run lock."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_feed, make_record
from importer import scheduler as scheduler_module
from importer import service
from importer.scheduler import ImportInProgress, ImportScheduler, seconds_remaining

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_seconds_remaining_without_previous_run_is_due_now():
    assert seconds_remaining(None, NOW, 900) == 0


def test_seconds_remaining_counts_down_from_last_run():
    assert seconds_remaining(NOW - timedelta(seconds=300), NOW, 900) == 600


def test_seconds_remaining_rounds_partial_seconds_up():
    assert seconds_remaining(NOW - timedelta(seconds=299.5), NOW, 900) == 601


def test_seconds_remaining_never_negative():
    assert seconds_remaining(NOW - timedelta(hours=5), NOW, 900) == 0


def test_seconds_remaining_future_last_run_counts_as_just_finished():
    assert seconds_remaining(NOW + timedelta(seconds=30), NOW, 900) == 900


def test_interval_from_env(monkeypatch):
    monkeypatch.setenv("IMPORT_INTERVAL_S", "60")
    assert scheduler_module.import_interval_s() == 60
    monkeypatch.setenv("IMPORT_INTERVAL_S", "-5")
    assert scheduler_module.import_interval_s() == 900


async def test_second_trigger_while_importing_is_rejected():
    sched = ImportScheduler(interval_s=900)
    release = asyncio.Event()

    async def slow_job():
        await release.wait()
        return "done"

    first = asyncio.create_task(sched.exclusive(slow_job))
    await asyncio.sleep(0)
    assert sched.is_importing

    with pytest.raises(ImportInProgress):
        await sched.exclusive(slow_job)

    release.set()
    assert await first == "done"
    assert not sched.is_importing


async def test_status_reflects_last_run(run_store):
    sched = ImportScheduler(interval_s=900, clock=lambda: NOW)
    run_id = await run_store.start_run(source="remote", trigger="scheduled")
    await run_store.finish_run(run_id, succeeded=True)
    run_store.runs[run_id]["finished_at"] = NOW - timedelta(seconds=100)

    status = await sched.status()

    assert status["state"] == "idle"
    assert status["seconds_remaining"] == 800
    assert status["interval_seconds"] == 900
    assert status["auto_refresh"] is False
    assert status["last_run"]["id"] == run_id


async def test_run_once_imports_when_due(run_store, property_store, monkeypatch):
    sched = ImportScheduler(interval_s=900)
    feed = make_feed(make_record("REF-A"))

    async def fake_fetch(**_):
        return feed

    monkeypatch.setattr(service.feed, "fetch_feed", fake_fetch)

    delay = await sched.run_once_if_due()

    assert delay == 900
    assert property_store.references() == ["REF-A"]
    last = await run_store.last_finished_run()
    assert last["trigger"] == "scheduled"


async def test_import_refused_while_another_worker_holds_the_lock(advisory_lock):
    sched = ImportScheduler(interval_s=900)
    advisory_lock.held_elsewhere = True
    ran = []

    async def job():
        ran.append(True)

    with pytest.raises(ImportInProgress, match="another process"):
        await sched.exclusive(job)

    assert ran == []
    assert not sched.is_importing


async def test_run_once_backs_off_when_another_worker_is_importing(run_store, property_store, advisory_lock):
    sched = ImportScheduler(interval_s=900)
    advisory_lock.held_elsewhere = True

    delay = await sched.run_once_if_due()

    assert delay == 1
    assert property_store.rows == {}
    assert run_store.runs == {}


async def test_run_once_waits_when_not_due(run_store, property_store):
    sched = ImportScheduler(interval_s=900, clock=lambda: NOW)
    run_id = await run_store.start_run(source="remote", trigger="manual")
    await run_store.finish_run(run_id, succeeded=True)
    run_store.runs[run_id]["finished_at"] = NOW - timedelta(seconds=600)

    delay = await sched.run_once_if_due()

    assert delay == 300
    assert property_store.rows == {}


async def test_failed_scheduled_run_resets_countdown(run_store, property_store, monkeypatch):
    sched = ImportScheduler(interval_s=900)

    async def failing_fetch(**_):
        raise service.feed.FeedFetchError("timeout")

    monkeypatch.setattr(service.feed, "fetch_feed", failing_fetch)

    delay = await sched.run_once_if_due()

    assert delay == 900
    last = await run_store.last_finished_run()
    assert last["succeeded"] is False


async def test_start_and_stop_loop(run_store, property_store):
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        await asyncio.sleep(0)

    sched = ImportScheduler(interval_s=900, clock=lambda: NOW, sleep=fake_sleep)
    run_id = await run_store.start_run(source="remote", trigger="manual")
    await run_store.finish_run(run_id, succeeded=True)
    run_store.runs[run_id]["finished_at"] = NOW

    sched.start()
    assert sched.is_running
    for _ in range(5):
        await asyncio.sleep(0)
    await sched.stop()

    assert not sched.is_running
    assert sleeps and sleeps[0] == 900
