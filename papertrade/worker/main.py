import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from papertrade.common.config import settings
from papertrade.common.database.db_connector import init_db
from papertrade.common.logging_config import setup_logging
from papertrade.worker import tasks
from papertrade.worker.routers import scheduler as scheduler_router
from papertrade.worker.scheduler_instance import scheduler

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "sweep_expired_cache_job"


async def sweep_expired_cache_job():
    """캐시 정리 작업을 스레드에서 실행해 이벤트 루프를 막지 않는다."""
    logger.info(f"[Trigger] '{SWEEP_JOB_ID}'")
    return await asyncio.to_thread(tasks.sweep_expired_cache_task)


def register_jobs():
    scheduler.add_job(
        sweep_expired_cache_job,
        'interval',
        minutes=settings.CACHE_SWEEP_INTERVAL_MINUTES,
        id=SWEEP_JOB_ID,
        name='만료 캐시 정리',
        replace_existing=True,
    )


def start_scheduler():
    register_jobs()
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started.")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("worker.log")
    logger.info("Starting worker service...")
    init_db()
    start_scheduler()
    yield
    logger.info("Shutting down worker service...")
    shutdown_scheduler()


app = FastAPI(lifespan=lifespan)
app.include_router(scheduler_router.router, prefix="/api/v1")
