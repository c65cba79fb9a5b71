import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException

from papertrade.common.config import settings
from papertrade.worker import tasks
from papertrade.worker.scheduler_instance import scheduler

router = APIRouter(prefix="/scheduler", tags=["scheduler"])
logger = logging.getLogger(__name__)


def _job_info(job) -> dict:
    return {
        "id": job.id,
        "name": job.name,
        "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        "trigger": str(job.trigger),
    }


def _cache_sweep_info() -> dict:
    return {
        "interval_minutes": settings.CACHE_SWEEP_INTERVAL_MINUTES,
        "quote_cache_minutes": settings.QUOTE_CACHE_MINUTES,
        "search_cache_minutes": settings.SEARCH_CACHE_MINUTES,
        "last_run": tasks.last_sweep,
    }


@router.get("/status")
async def get_scheduler_status():
    """스케줄러 실행 여부, 등록된 작업, 캐시 정리 주기와 마지막 결과"""
    jobs = [_job_info(job) for job in scheduler.get_jobs()] if scheduler.running else []
    return {"is_running": scheduler.running, "jobs": jobs, "cache_sweep": _cache_sweep_info()}


@router.post("/sweep")
async def run_cache_sweep_now():
    """만료 캐시 정리를 즉시 실행하고 결과를 돌려준다."""
    logger.info("만료 캐시 정리 수동 실행 요청")
    result = await asyncio.to_thread(tasks.sweep_expired_cache_task)
    if not result["success"]:
        raise HTTPException(status_code=500, detail=f"캐시 정리 실패: {result['error']}")
    return result


@router.post("/trigger/{job_id}")
async def trigger_scheduler_job(job_id: str):
    """등록된 작업의 다음 실행 시각을 지금으로 앞당긴다."""
    job = scheduler.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job '{job_id}' not found.")

    try:
        now = datetime.now(scheduler.timezone)
        job.modify(next_run_time=now)
    except Exception as e:
        logger.error(f"작업 즉시 실행 실패 '{job_id}': {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to trigger job '{job_id}': {str(e)}")
    logger.info(f"작업 즉시 실행 예약: {job_id}")
    return {"job_id": job.id, "message": f"Job '{job.id}' triggered to run now.", "triggered_at": now.isoformat()}
