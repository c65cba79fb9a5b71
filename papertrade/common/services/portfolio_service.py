import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from papertrade.common.schemas.ledger import HoldingRead, StockTransactionRead, WalletRead, WalletTransactionRead
from papertrade.common.schemas.trade import FinancialSummary, NetWorthSummary, PortfolioView
from papertrade.common.services.ledger_service import LedgerService, money
from papertrade.common.services.market_data_service import MarketDataService, normalize_symbol
from papertrade.common.utils.exceptions import PaperTradeError

logger = logging.getLogger(__name__)


class PortfolioService:
    def __init__(self, ledger: LedgerService = None, market_data: MarketDataService = None):
        self.ledger = ledger or LedgerService()
        self.market_data = market_data or MarketDataService()

    def get_wallet(self, db: Session, user_id: int) -> WalletRead:
        return WalletRead.model_validate(self.ledger.get_or_create_wallet(db, user_id))

    async def get_portfolio(self, db: Session, user_id: int, update_prices: bool = True) -> PortfolioView:
        holdings = self.ledger.get_holdings(db, user_id)

        if holdings and update_prices:
            price_map = {}
            for holding in holdings:
                try:
                    quote = await self.market_data.fetch_quote(db, holding.symbol)
                    price_map[holding.symbol] = quote.current_price
                except PaperTradeError as e:
                    # 시세를 못 가져오면 마지막 현재가, 없으면 평균단가로 평가
                    logger.warning(f"보유종목 시세 조회 실패: {holding.symbol} - {e}")
                    price_map[holding.symbol] = holding.current_price or holding.average_price

            with self.ledger.transaction(db, user_id):
                self.ledger.refresh_current_prices(db, user_id, price_map)
                self.ledger.recompute_wallet_totals(db, user_id)
            holdings = self.ledger.get_holdings(db, user_id)

        total_invested = sum(h.invested_amount for h in holdings)
        total_current = sum(h.current_value if h.current_value is not None else h.invested_amount for h in holdings)
        total_pnl = total_current - total_invested
        return PortfolioView(
            total_holdings=len(holdings),
            total_invested=money(total_invested),
            total_current_value=money(total_current),
            total_profit_loss=money(total_pnl),
            total_profit_loss_percent=money(total_pnl / total_invested * 100) if total_invested > 0 else 0.0,
            holdings=[HoldingRead.model_validate(h) for h in holdings],
        )

    def get_holding(self, db: Session, user_id: int, symbol: str) -> Optional[HoldingRead]:
        holding = self.ledger.get_holding(db, user_id, normalize_symbol(symbol))
        return HoldingRead.model_validate(holding) if holding else None

    def get_stock_history(self, db: Session, user_id: int, limit: int = 50, offset: int = 0) -> List[StockTransactionRead]:
        return [
            StockTransactionRead.model_validate(t)
            for t in self.ledger.get_stock_transactions(db, user_id, limit=limit, offset=offset)
        ]

    def get_wallet_history(self, db: Session, user_id: int, limit: int = 50, offset: int = 0) -> List[WalletTransactionRead]:
        return [
            WalletTransactionRead.model_validate(t)
            for t in self.ledger.get_wallet_transactions(db, user_id, limit=limit, offset=offset)
        ]

    async def get_financial_summary(self, db: Session, user_id: int) -> FinancialSummary:
        """지갑 + 포트폴리오(현재가 갱신) + 최근 거래 10건 + 순자산 요약"""
        portfolio = await self.get_portfolio(db, user_id, update_prices=True)
        wallet = self.get_wallet(db, user_id)
        return FinancialSummary(
            wallet=wallet,
            portfolio=portfolio,
            recent_stock_transactions=self.get_stock_history(db, user_id, limit=10),
            recent_wallet_transactions=self.get_wallet_history(db, user_id, limit=10),
            summary=NetWorthSummary(
                total_net_worth=money(wallet.balance + portfolio.total_current_value),
                liquid_cash=wallet.balance,
                invested_amount=portfolio.total_invested,
                portfolio_value=portfolio.total_current_value,
                total_profit_loss=portfolio.total_profit_loss,
                total_profit_loss_percent=portfolio.total_profit_loss_percent,
            ),
        )
