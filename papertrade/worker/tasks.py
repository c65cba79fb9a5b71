import logging
from datetime import datetime
from typing import Optional

from papertrade.common.database.db_connector import SessionLocal
from papertrade.common.services.cache_maintenance_service import CacheMaintenanceService

logger = logging.getLogger(__name__)

# 마지막 정리 결과 (스케줄러 상태 조회용)
last_sweep: Optional[dict] = None


def sweep_expired_cache_task():
    """
    만료된 시세/검색 캐시를 정리한다.
    실패해도 예외를 밖으로 던지지 않고 다음 주기에 다시 시도한다.
    """
    global last_sweep
    start_time = datetime.now()
    logger.info("만료 캐시 정리 작업 시작.")
    db = SessionLocal()
    try:
        result = CacheMaintenanceService().clean_expired_cache(db)
        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"만료 캐시 정리 완료: {result['total_entries_removed']}건 삭제 ({duration:.2f}초)")
        outcome = {"success": True, **result}
    except Exception as e:
        db.rollback()
        logger.error(f"만료 캐시 정리 작업 실패: {e}", exc_info=True)
        outcome = {"success": False, "error": str(e)}
    finally:
        db.close()
    last_sweep = {"finished_at": datetime.now().isoformat(), **outcome}
    return outcome
