"""Tests for detached background task ownership."""

from __future__ import annotations

import asyncio

from ram_orchestrator.jobs import JobTaskSupervisor


def test_supervisor_releases_finished_tasks_and_survives_crashes() -> None:
    supervisor = JobTaskSupervisor()
    completed: list[str] = []

    async def succeed() -> None:
        await asyncio.sleep(0)
        completed.append("ok")

    async def crash() -> None:
        raise RuntimeError("boom")

    async def scenario() -> int:
        supervisor.job_submit(succeed(), name="succeed")
        supervisor.job_submit(crash(), name="crash")
        await supervisor.job_wait_idle()
        return supervisor.job_active_count

    assert asyncio.run(scenario()) == 0
    assert completed == ["ok"]


def test_supervisor_shutdown_cancels_pending_tasks() -> None:
    supervisor = JobTaskSupervisor()
    cancelled: list[bool] = []

    async def wait_forever() -> None:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def scenario() -> int:
        supervisor.job_submit(wait_forever(), name="forever")
        await asyncio.sleep(0)
        await supervisor.job_shutdown(timeout=1.0)
        await asyncio.sleep(0)
        return supervisor.job_active_count

    assert asyncio.run(scenario()) == 0
    assert cancelled == [True]
