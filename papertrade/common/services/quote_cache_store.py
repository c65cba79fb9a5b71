from datetime import timedelta
from typing import Callable, Dict, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from papertrade.common.config import settings
from papertrade.common.models.quote_cache import Quote, CacheMetadata
from papertrade.common.models.historical_bar import HistoricalBar
from papertrade.common.schemas.market_data import PriceBar
from papertrade.common.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

QUOTE_FIELDS = (
    "current_price",
    "previous_close",
    "day_high",
    "day_low",
    "volume",
    "currency",
    "exchange",
    "source",
)


def make_cache_key(symbol: str, data_type: str, period: Optional[str] = None) -> str:
    return f"{symbol}_{data_type}_{period or 'default'}"


class QuoteCacheStore:
    """
    시세/과거 시세 캐시 저장소.

    조회 메서드는 절대 외부 API 를 호출하지 않는다. 신선하지 않으면 None (또는 빈 리스트)을 돌려줄 뿐이다.
    DB I/O 오류는 SQLAlchemyError 그대로 올라가며, 호출자는 이를 캐시 미스로 취급한다.
    """

    def __init__(self, now_func: Callable = utcnow):
        self.now = now_func

    def get_quote(self, db: Session, symbol: str, max_age_minutes: int = None) -> Optional[Quote]:
        if max_age_minutes is None:
            max_age_minutes = settings.QUOTE_CACHE_MINUTES
        quote = db.query(Quote).filter(Quote.symbol == symbol).first()
        if quote is None:
            logger.debug(f"시세 캐시 없음: {symbol}")
            return None

        age = self.now() - quote.fetched_at
        if age > timedelta(minutes=max_age_minutes):
            logger.debug(f"시세 캐시 만료: {symbol} (age={age})")
            return None

        self._touch(db, make_cache_key(symbol, "quote"))
        logger.debug(f"시세 캐시 적중: {symbol} (age={age})")
        return quote

    def put_quote(self, db: Session, symbol: str, quote: Dict) -> Quote:
        now = self.now()
        row = db.query(Quote).filter(Quote.symbol == symbol).first()
        if row is None:
            row = Quote(symbol=symbol)
            db.add(row)
        for field in QUOTE_FIELDS:
            if field in quote:
                setattr(row, field, quote[field])
        row.fetched_at = now

        self._upsert_metadata(db, symbol, "quote", None, now, timedelta(minutes=settings.QUOTE_CACHE_MINUTES))
        db.commit()
        logger.debug(f"시세 캐시 저장: {symbol} price={row.current_price}")
        return row

    def get_historical_bars(
        self, db: Session, symbol: str, period: str, max_age_hours: int = None, interval: Optional[str] = None
    ) -> List[HistoricalBar]:
        """interval 을 주면 해당 간격의 봉만 돌려준다. 생략하면 기간 안의 모든 간격을 돌려준다."""
        if max_age_hours is None:
            max_age_hours = settings.HISTORICAL_CACHE_HOURS
        cutoff = self.now() - timedelta(hours=max_age_hours)
        query = db.query(HistoricalBar).filter(
            HistoricalBar.symbol == symbol,
            HistoricalBar.period == period,
            HistoricalBar.fetched_at >= cutoff,
        )
        if interval is not None:
            query = query.filter(HistoricalBar.interval == interval)
        bars = query.order_by(HistoricalBar.bar_time.asc()).all()

        if bars:
            self._touch(db, make_cache_key(symbol, "historical", period))
            logger.debug(f"과거 시세 캐시 적중: {symbol} {period} - {len(bars)}개")
        else:
            logger.debug(f"과거 시세 캐시 없음/만료: {symbol} {period}")
        return bars

    def put_historical_bars(self, db: Session, symbol: str, period: str, interval: str, bars: Sequence[PriceBar]) -> int:
        now = self.now()

        # 같은 배치 안에서 키가 겹치면 마지막 봉을 사용
        latest: Dict = {}
        for bar in bars:
            latest[bar.bar_time] = bar

        for bar_time, bar in latest.items():
            row = db.query(HistoricalBar).filter(
                HistoricalBar.symbol == symbol,
                HistoricalBar.bar_time == bar_time,
                HistoricalBar.period == period,
                HistoricalBar.interval == interval,
            ).first()
            if row is None:
                row = HistoricalBar(
                    symbol=symbol,
                    bar_time=bar_time,
                    period=period,
                    interval=interval,
                )
                db.add(row)
            row.date = bar_time.date()
            row.open = bar.open
            row.high = bar.high
            row.low = bar.low
            row.close = bar.close
            row.volume = bar.volume
            row.fetched_at = now

        self._upsert_metadata(db, symbol, "historical", period, now, timedelta(hours=settings.HISTORICAL_CACHE_HOURS))
        db.commit()
        logger.debug(f"과거 시세 캐시 저장: {symbol} {period}/{interval} - {len(latest)}개")
        return len(latest)

    def sweep_expired(self, db: Session) -> int:
        """만료된 캐시 메타데이터만 삭제한다. 시세/봉 데이터 자체는 건드리지 않는다."""
        deleted = db.query(CacheMetadata).filter(
            CacheMetadata.expires_at < self.now()
        ).delete(synchronize_session=False)
        db.commit()
        logger.info(f"만료된 캐시 메타데이터 {deleted}건 삭제.")
        return deleted

    def _upsert_metadata(self, db: Session, symbol: str, data_type: str, period: Optional[str], now, ttl: timedelta):
        key = make_cache_key(symbol, data_type, period)
        meta = db.query(CacheMetadata).filter(CacheMetadata.cache_key == key).first()
        if meta is None:
            meta = CacheMetadata(cache_key=key, symbol=symbol, data_type=data_type, period=period, hit_count=0)
            db.add(meta)
        meta.last_fetched = now
        meta.expires_at = now + ttl

    def _touch(self, db: Session, key: str):
        meta = db.query(CacheMetadata).filter(CacheMetadata.cache_key == key).first()
        if meta is not None:
            meta.hit_count = (meta.hit_count or 0) + 1
            db.commit()
