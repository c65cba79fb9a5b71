from sqlalchemy import Column, Integer, String, DateTime, Text
from papertrade.common.database.db_connector import Base
from papertrade.common.utils.time_utils import utcnow

class SearchCacheEntry(Base):
    __tablename__ = 'search_cache'

    id = Column(Integer, primary_key=True, autoincrement=True)
    query = Column(String(255), unique=True, nullable=False, index=True)
    results = Column(Text, nullable=False)  # JSON 직렬화된 검색 결과 목록
    result_count = Column(Integer, default=0, nullable=False)
    source = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
