from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from papertrade.api.auth.jwt_handler import get_current_active_user
from papertrade.common.database.db_connector import get_db
from papertrade.common.models.user import User
from papertrade.common.schemas.result import OperationResult
from papertrade.common.services.portfolio_service import PortfolioService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])

def get_portfolio_service():
    return PortfolioService()

@router.get("")
async def get_portfolio(
    update_prices: bool = True,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    return OperationResult.ok(await portfolio_service.get_portfolio(db, current_user.id, update_prices=update_prices))

@router.get("/summary")
async def get_financial_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    return OperationResult.ok(await portfolio_service.get_financial_summary(db, current_user.id))

@router.get("/holdings/{symbol}")
def get_holding(
    symbol: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    holding = portfolio_service.get_holding(db, current_user.id, symbol)
    if holding is None:
        return OperationResult.ok(
            {"symbol": symbol.upper(), "owns": False, "quantity": 0},
            message=f"You don't own any shares of {symbol.upper()}",
        )
    return OperationResult.ok({"symbol": holding.symbol, "owns": True, "quantity": holding.quantity, "holding": holding})
