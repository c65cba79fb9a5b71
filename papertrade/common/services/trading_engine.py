import logging
from typing import Optional

from sqlalchemy.orm import Session

from papertrade.common.schemas.ledger import HoldingRead
from papertrade.common.schemas.trade import Affordability, BalanceResult, TradeResult
from papertrade.common.services.ledger_service import LedgerService, is_cent_amount, money, new_order_ref
from papertrade.common.services.market_data_service import MarketDataService, normalize_symbol
from papertrade.common.services.stock_master_service import StockMasterService
from papertrade.common.utils.exceptions import (
    InsufficientBalance,
    InsufficientShares,
    InvalidAmount,
    InvalidQuantity,
    PaperTradeError,
    PriceUnavailable,
)

logger = logging.getLogger(__name__)


class TradingEngine:
    """
    주문 실행기. 주문은 즉시 체결되거나 실패하며 대기 상태는 없다.

    매수: 수량 검증 -> 가격 결정 -> [잔액 확인 -> 잔액 차감 -> 보유종목 반영 -> 지갑 합계 재계산]
    매도: 수량 검증 -> 가격 결정 -> [보유수량 확인 -> 보유종목 차감 -> 매도대금 입금 -> 지갑 합계 재계산]
    [] 구간은 하나의 원장 트랜잭션이며 중간에 실패하면 전부 롤백된다.
    """

    def __init__(
        self,
        ledger: LedgerService = None,
        market_data: MarketDataService = None,
        stock_master: StockMasterService = None,
    ):
        self.ledger = ledger or LedgerService()
        self.market_data = market_data or MarketDataService()
        self.stock_master = stock_master or StockMasterService()

    async def buy(self, db: Session, user_id: int, symbol: str, quantity: int, price: Optional[float] = None) -> TradeResult:
        symbol = normalize_symbol(symbol)
        self._validate_quantity(quantity)
        price = await self.resolve_price(db, symbol, price)
        company_name = self._company_name(db, symbol)
        total = money(quantity * price)
        order_ref = new_order_ref()
        logger.info(f"매수 주문: user_id={user_id}, {symbol} x{quantity} @ {price} (order_ref={order_ref})")

        with self.ledger.transaction(db, user_id):
            wallet = self.ledger.get_or_create_wallet(db, user_id)
            if wallet.balance < total:
                raise InsufficientBalance(required=total, available=wallet.balance)
            balance = self.ledger.adjust_balance(
                db, user_id, total, "STOCK_PURCHASE",
                description=f"Bought {quantity} shares of {symbol} at {price:.2f}",
                reference_id=order_ref,
            )
            self.ledger.record_buy(db, user_id, symbol, company_name, quantity, price, order_ref=order_ref)
            self.ledger.recompute_wallet_totals(db, user_id)

        return self._trade_result(db, user_id, order_ref, symbol, "BUY", quantity, price, total, balance)

    async def sell(self, db: Session, user_id: int, symbol: str, quantity: int, price: Optional[float] = None) -> TradeResult:
        symbol = normalize_symbol(symbol)
        self._validate_quantity(quantity)
        price = await self.resolve_price(db, symbol, price)
        total = money(quantity * price)
        order_ref = new_order_ref()
        logger.info(f"매도 주문: user_id={user_id}, {symbol} x{quantity} @ {price} (order_ref={order_ref})")

        with self.ledger.transaction(db, user_id):
            holding = self.ledger.get_holding(db, user_id, symbol)
            held = holding.quantity if holding else 0
            if held < quantity:
                raise InsufficientShares(symbol, held, quantity)
            self.ledger.record_sell(db, user_id, symbol, quantity, price, order_ref=order_ref)
            balance = self.ledger.adjust_balance(
                db, user_id, total, "STOCK_SALE",
                description=f"Sold {quantity} shares of {symbol} at {price:.2f}",
                reference_id=order_ref,
            )
            self.ledger.recompute_wallet_totals(db, user_id)

        return self._trade_result(db, user_id, order_ref, symbol, "SELL", quantity, price, total, balance)

    def deposit(self, db: Session, user_id: int, amount: float, description: str = "Wallet deposit") -> BalanceResult:
        self._validate_amount(amount)
        balance = self.ledger.adjust_balance(db, user_id, amount, "DEPOSIT", description=description)
        logger.info(f"입금: user_id={user_id}, amount={amount}, balance={balance}")
        return BalanceResult(transaction_type="DEPOSIT", amount=money(amount), balance_after=balance)

    def withdraw(self, db: Session, user_id: int, amount: float, description: str = "Wallet withdrawal") -> BalanceResult:
        self._validate_amount(amount)
        balance = self.ledger.adjust_balance(db, user_id, amount, "WITHDRAWAL", description=description)
        logger.info(f"출금: user_id={user_id}, amount={amount}, balance={balance}")
        return BalanceResult(transaction_type="WITHDRAWAL", amount=money(amount), balance_after=balance)

    async def can_afford(self, db: Session, user_id: int, symbol: str, quantity: int, price: Optional[float] = None) -> Affordability:
        symbol = normalize_symbol(symbol)
        self._validate_quantity(quantity)
        price = await self.resolve_price(db, symbol, price)
        required = money(quantity * price)
        available = self.ledger.get_or_create_wallet(db, user_id).balance
        return Affordability(
            symbol=symbol,
            quantity=quantity,
            stock_price=price,
            required_amount=required,
            available_balance=available,
            can_afford=available >= required,
            shortfall=money(required - available) if available < required else 0.0,
        )

    async def resolve_price(self, db: Session, symbol: str, price: Optional[float] = None) -> float:
        if price is not None:
            if price <= 0:
                raise InvalidAmount(price)
            return float(price)
        try:
            quote = await self.market_data.fetch_quote(db, symbol)
        except PaperTradeError as e:
            logger.warning(f"체결 가격 조회 실패: {symbol} - {e}")
            raise PriceUnavailable(symbol) from e
        if quote.current_price is None or quote.current_price <= 0:
            raise PriceUnavailable(symbol)
        return quote.current_price

    def _company_name(self, db: Session, symbol: str) -> str:
        stock = self.stock_master.get_stock_by_symbol(db, symbol)
        return stock.name if stock else symbol

    def _trade_result(self, db, user_id, order_ref, symbol, kind, quantity, price, total, balance) -> TradeResult:
        holding = self.ledger.get_holding(db, user_id, symbol)
        return TradeResult(
            order_ref=order_ref,
            symbol=symbol,
            transaction_type=kind,
            quantity=quantity,
            price=price,
            total_amount=total,
            balance_after=balance,
            holding=HoldingRead.model_validate(holding) if holding else None,
        )

    @staticmethod
    def _validate_quantity(quantity):
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(quantity)

    @staticmethod
    def _validate_amount(amount):
        if not is_cent_amount(amount):
            raise InvalidAmount(amount)
