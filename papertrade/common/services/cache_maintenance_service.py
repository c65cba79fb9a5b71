import logging

from sqlalchemy.orm import Session

from papertrade.common.services.quote_cache_store import QuoteCacheStore
from papertrade.common.services.search_service import SearchService

logger = logging.getLogger(__name__)


class CacheMaintenanceService:
    def __init__(self, cache_store: QuoteCacheStore = None, search_service: SearchService = None):
        self.cache_store = cache_store or QuoteCacheStore()
        self.search_service = search_service or SearchService()

    def clean_expired_cache(self, db: Session) -> dict:
        """시세 캐시 메타데이터와 검색 캐시의 만료 항목을 함께 정리한다."""
        quotes_cleared = self.cache_store.sweep_expired(db)
        search_cleared = self.search_service.sweep_expired(db)
        if quotes_cleared or search_cleared:
            logger.info(f"캐시 정리: 시세 {quotes_cleared}건, 검색 {search_cleared}건")
        return {
            "quote_cache_entries_removed": quotes_cleared,
            "search_cache_entries_removed": search_cleared,
            "total_entries_removed": quotes_cleared + search_cleared,
        }
