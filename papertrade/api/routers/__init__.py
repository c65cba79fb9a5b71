from .auth import router as auth_router
from .stocks import router as stocks_router
from .trade import router as trade_router
from .wallet import router as wallet_router
from .portfolio import router as portfolio_router
from .watchlist import router as watchlist_router
