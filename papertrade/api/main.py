from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI

from papertrade.api.errors import register_exception_handlers
from papertrade.api.routers import auth, portfolio, stocks, trade, wallet, watchlist
from papertrade.common.config import settings
from papertrade.common.database.db_connector import SessionLocal, init_db
from papertrade.common.logging_config import setup_logging
from papertrade.common.services.stock_master_service import StockMasterService
from papertrade.worker.main import shutdown_scheduler, start_scheduler
from papertrade.worker.routers import scheduler as scheduler_router

logger = logging.getLogger(__name__)


def seed_stock_master():
    """개발 환경: 기본 종목 마스터와 인기 종목 목록을 시딩한다."""
    db = SessionLocal()
    try:
        StockMasterService().seed_default_stocks(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("app.log")
    logger.info(f"API 서비스 시작 (APP_ENV={settings.APP_ENV})")
    init_db()
    if settings.should_seed:
        seed_stock_master()
    start_scheduler()
    yield
    shutdown_scheduler()
    logger.info("API 서비스 종료")


app = FastAPI(
    title="papertrade",
    lifespan=lifespan,
    # Swagger UI 에서 Bearer 토큰 입력
    components={
        "securitySchemes": {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
            }
        }
    },
)
register_exception_handlers(app)

# --- Routers ---
app.include_router(auth.router, prefix="/api/v1")
app.include_router(stocks.router, prefix="/api/v1")
app.include_router(trade.router, prefix="/api/v1")
app.include_router(wallet.router, prefix="/api/v1")
app.include_router(portfolio.router, prefix="/api/v1")
app.include_router(watchlist.router, prefix="/api/v1")
app.include_router(scheduler_router.router, prefix="/api/v1")

# --- Basic Endpoints ---
@app.get("/")
def read_root():
    return {"message": "papertrade API 서비스 정상 동작"}

@app.get("/health")
def health_check():
    """헬스체크 엔드포인트"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
