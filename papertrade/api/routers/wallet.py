from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logging

from papertrade.api.auth.jwt_handler import get_current_active_user
from papertrade.common.database.db_connector import get_db
from papertrade.common.models.user import User
from papertrade.common.schemas.result import OperationResult
from papertrade.common.schemas.trade import AmountRequest
from papertrade.common.services.portfolio_service import PortfolioService
from papertrade.common.services.trading_engine import TradingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])

def get_trading_engine():
    return TradingEngine()

def get_portfolio_service():
    return PortfolioService()

@router.get("")
def get_wallet(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    return OperationResult.ok(portfolio_service.get_wallet(db, current_user.id))

@router.post("/deposit")
def deposit(
    request: AmountRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    engine: TradingEngine = Depends(get_trading_engine),
):
    result = engine.deposit(db, current_user.id, request.amount)
    return OperationResult.ok(result, message=f"Successfully added {request.amount:.2f} to wallet")

@router.post("/withdraw")
def withdraw(
    request: AmountRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    engine: TradingEngine = Depends(get_trading_engine),
):
    result = engine.withdraw(db, current_user.id, request.amount)
    return OperationResult.ok(result, message=f"Successfully withdrew {request.amount:.2f} from wallet")

@router.get("/transactions")
def wallet_transactions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    return OperationResult.ok(portfolio_service.get_wallet_history(db, current_user.id, limit=limit, offset=offset))
