from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from papertrade.api.auth.jwt_handler import get_current_active_user
from papertrade.common.database.db_connector import get_db
from papertrade.common.models.user import User
from papertrade.common.schemas.result import OperationResult
from papertrade.common.schemas.trade import TradeRequest
from papertrade.common.services.portfolio_service import PortfolioService
from papertrade.common.services.trading_engine import TradingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trade", tags=["trade"])

def get_trading_engine():
    return TradingEngine()

def get_portfolio_service():
    return PortfolioService()

@router.post("/buy")
async def buy_stock(
    order: TradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    engine: TradingEngine = Depends(get_trading_engine),
):
    logger.debug(f"매수 요청: user_id={current_user.id}, {order}")
    result = await engine.buy(db, current_user.id, order.symbol, order.quantity, order.price)
    return OperationResult.ok(result, message=f"Successfully bought {result.quantity} shares of {result.symbol}")

@router.post("/sell")
async def sell_stock(
    order: TradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    engine: TradingEngine = Depends(get_trading_engine),
):
    logger.debug(f"매도 요청: user_id={current_user.id}, {order}")
    result = await engine.sell(db, current_user.id, order.symbol, order.quantity, order.price)
    return OperationResult.ok(result, message=f"Successfully sold {result.quantity} shares of {result.symbol}")

@router.get("/affordability")
async def check_affordability(
    symbol: str,
    quantity: int,
    price: Optional[float] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    engine: TradingEngine = Depends(get_trading_engine),
):
    result = await engine.can_afford(db, current_user.id, symbol, quantity, price)
    return OperationResult.ok(result)

@router.get("/history")
def trade_history(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    return OperationResult.ok(portfolio_service.get_stock_history(db, current_user.id, limit=limit, offset=offset))
