from .user import User
from .stock_master import StockMaster, PopularStock
from .quote_cache import Quote, CacheMetadata
from .historical_bar import HistoricalBar
from .search_cache import SearchCacheEntry
from .wallet import Wallet, WalletTransaction
from .holding import Holding
from .stock_transaction import StockTransaction
from .watchlist import Watchlist

__all__ = [
    "User",
    "StockMaster",
    "PopularStock",
    "Quote",
    "CacheMetadata",
    "HistoricalBar",
    "SearchCacheEntry",
    "Wallet",
    "WalletTransaction",
    "Holding",
    "StockTransaction",
    "Watchlist",
]
