from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from payplan.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job | None:
    """Queue ``task_name`` on the worker; the pool is closed afterwards.

    Returns ``None`` when arq refuses the job because one with the same
    ``_job_id`` is already queued or running.
    """
    pool = await get_redis_pool()
    try:
        return await pool.enqueue_job(task_name, *args, **kwargs)
    finally:
        await pool.close()


async def _enqueue_single(task_name: str) -> Job | None:
    # Keyed by task name so repeated manual triggers collapse into one queued run.
    return await enqueue_task(task_name, _job_id=f"manual:{task_name}")


async def enqueue_update_installment_statuses() -> Job | None:
    """Queue an out-of-schedule overdue status run."""
    return await _enqueue_single("update_installment_statuses_task")


async def enqueue_send_due_soon_notifications() -> Job | None:
    """Queue an out-of-schedule due-soon reminder run."""
    return await _enqueue_single("send_due_soon_notifications_task")


async def enqueue_check_job_health() -> Job | None:
    return await _enqueue_single("check_job_health_task")
