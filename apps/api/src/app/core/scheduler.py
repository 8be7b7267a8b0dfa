"""
Background Job Scheduler

Periodic maintenance (currently the email outbox retry) runs on an APScheduler
``AsyncIOScheduler`` that lives for the duration of the FastAPI lifespan.

Modules add jobs to a registry with ``register_job``; ``start_scheduler``
schedules every registered job, and jobs registered afterwards are scheduled
straight away. Development endpoints can run, pause or resume a job by id.
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, None]]

SCHEDULER_TIMEZONE = "UTC"

# Missed runs collapse into one; a job never overlaps itself
JOB_DEFAULTS = {
    "coalesce": True,
    "max_instances": 1,
    "misfire_grace_time": 300,
}


@dataclass
class RegisteredJob:
    func: JobFunc
    trigger: BaseTrigger


_registry: dict[str, RegisteredJob] = {}
_scheduler: AsyncIOScheduler | None = None


def _is_running() -> bool:
    return _scheduler is not None and _scheduler.running


def _on_job_event(event: JobExecutionEvent) -> None:
    if event.exception:
        logger.error(
            f"Background job {event.job_id} raised: {event.exception}",
            exc_info=event.exception,
        )
        return
    logger.info(f"Background job {event.job_id} finished")


def _add_to_scheduler(job_id: str, job: RegisteredJob) -> None:
    assert _scheduler is not None
    _scheduler.add_job(job.func, trigger=job.trigger, id=job_id, replace_existing=True)
    logger.info(f"Scheduled background job {job_id}")


def register_job(job_id: str, func: JobFunc, trigger: BaseTrigger) -> None:
    """Add a job to the registry, scheduling it now if the scheduler is up."""
    job = RegisteredJob(func=func, trigger=trigger)
    _registry[job_id] = job
    if _is_running():
        _add_to_scheduler(job_id, job)


async def start_scheduler() -> AsyncIOScheduler:
    """Start the scheduler with every registered job. Idempotent."""
    global _scheduler

    if _is_running():
        logger.warning("start_scheduler called while the scheduler is running")
        return _scheduler

    scheduler = AsyncIOScheduler(timezone=SCHEDULER_TIMEZONE, job_defaults=JOB_DEFAULTS)
    scheduler.add_listener(_on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    _scheduler = scheduler

    for job_id, job in _registry.items():
        _add_to_scheduler(job_id, job)

    scheduler.start()
    logger.info(f"Scheduler started ({len(_registry)} jobs)")
    return scheduler


async def stop_scheduler() -> None:
    """Shut down, letting running jobs complete."""
    global _scheduler

    if not _is_running():
        return

    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler stopped")


async def trigger_job_manually(job_id: str) -> dict[str, Any]:
    """
    Run a registered job once, outside its trigger.

    Returns:
        ``{"job_id", "status", "executed_at"}`` plus ``error`` when it failed

    Raises:
        ValueError: Unknown job_id
    """
    job = _registry.get(job_id)
    if job is None:
        raise ValueError(f"Unknown job '{job_id}'. Registered: {sorted(_registry)}")

    result: dict[str, Any] = {
        "job_id": job_id,
        "executed_at": datetime.now(UTC).isoformat(),
    }
    logger.info(f"Running background job {job_id} on demand")

    try:
        await job.func()
    except Exception as e:
        logger.error(f"On-demand run of {job_id} failed: {e}", exc_info=True)
        result.update(status="error", error=str(e))
        return result

    result["status"] = "success"
    return result


def list_registered_jobs() -> list[dict[str, Any]]:
    """Registry contents with next run time; a paused job has none."""
    jobs = []
    for job_id in _registry:
        info: dict[str, Any] = {"job_id": job_id, "registered": True}
        if _scheduler is not None:
            scheduled = _scheduler.get_job(job_id)
            next_run = scheduled.next_run_time if scheduled else None
            info["next_run_time"] = next_run.isoformat() if next_run else None
            info["is_paused"] = next_run is None
        jobs.append(info)
    return jobs


def _scheduled(job_id: str) -> bool:
    return _scheduler is not None and _scheduler.get_job(job_id) is not None


def pause_job(job_id: str) -> bool:
    if not _scheduled(job_id):
        logger.warning(f"Cannot pause {job_id}: not scheduled")
        return False
    _scheduler.pause_job(job_id)
    logger.info(f"Background job {job_id} paused")
    return True


def resume_job(job_id: str) -> bool:
    if not _scheduled(job_id):
        logger.warning(f"Cannot resume {job_id}: not scheduled")
        return False
    _scheduler.resume_job(job_id)
    logger.info(f"Background job {job_id} resumed")
    return True
