from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from papertrade.api.auth.jwt_handler import get_current_active_user
from papertrade.common.database.db_connector import get_db
from papertrade.common.models.user import User
from papertrade.common.schemas.result import OperationResult
from papertrade.common.schemas.watchlist import WatchlistCreate, WatchlistItem
from papertrade.common.services.watchlist_service import WatchlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/watchlist", tags=["watchlist"])

def get_watchlist_service():
    return WatchlistService()

@router.get("")
async def get_watchlist(
    include_prices: bool = True,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    watchlist_service: WatchlistService = Depends(get_watchlist_service),
):
    return OperationResult.ok(await watchlist_service.get_watchlist(db, current_user.id, include_prices=include_prices))

@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_watchlist(
    item: WatchlistCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    watchlist_service: WatchlistService = Depends(get_watchlist_service),
):
    entry, added = watchlist_service.add_to_watchlist(db, current_user.id, item.symbol)
    message = "Added to watchlist" if added else "Already in watchlist"
    return OperationResult.ok({"added": added, "item": WatchlistItem.model_validate(entry)}, message=message)

@router.delete("/{symbol}")
def remove_from_watchlist(
    symbol: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    watchlist_service: WatchlistService = Depends(get_watchlist_service),
):
    removed = watchlist_service.remove_from_watchlist(db, current_user.id, symbol)
    message = "Removed from watchlist" if removed else "Not in watchlist"
    return OperationResult.ok({"removed": removed, "symbol": symbol.upper()}, message=message)

@router.get("/{symbol}/status")
def watchlist_status(
    symbol: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    watchlist_service: WatchlistService = Depends(get_watchlist_service),
):
    in_watchlist = watchlist_service.is_in_watchlist(db, current_user.id, symbol)
    return OperationResult.ok({"symbol": symbol.upper(), "in_watchlist": in_watchlist})
