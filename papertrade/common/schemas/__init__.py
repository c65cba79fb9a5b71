from .user import UserCreate, UserRead, UserLogin, Token, TokenData
from .market_data import StockQuote, PriceBar, HistoricalSeries, CompareItem
from .search import SearchResult, SearchResponse, SearchAndQuote
from .ledger import WalletRead, WalletTransactionRead, StockTransactionRead, HoldingRead
from .trade import TradeRequest, AmountRequest, TradeResult, BalanceResult, Affordability, PortfolioView, FinancialSummary
from .watchlist import WatchlistCreate, WatchlistItem, WatchlistResponse
from .result import OperationResult, ErrorDetail
