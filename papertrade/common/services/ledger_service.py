import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from papertrade.common.models.holding import Holding
from papertrade.common.models.stock_transaction import StockTransaction
from papertrade.common.models.wallet import Wallet, WalletTransaction
from papertrade.common.utils.exceptions import (
    InsufficientBalance,
    InsufficientShares,
    InvalidAmount,
    InvalidQuantity,
    InvalidTransactionType,
    PaperTradeError,
    TransactionFailed,
)
from papertrade.common.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

CREDIT_KINDS = {"DEPOSIT", "STOCK_SALE"}
DEBIT_KINDS = {"WITHDRAWAL", "STOCK_PURCHASE"}

_DEPTH_KEY = "ledger_tx_depth"

_user_locks: Dict[int, threading.RLock] = {}
_user_locks_guard = threading.Lock()


def _lock_for(user_id: int) -> threading.RLock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = _user_locks[user_id] = threading.RLock()
        return lock


def money(value: float) -> float:
    return round(value, 2)


def is_cent_amount(value) -> bool:
    """양수이고 소수점 둘째 자리 이하가 없는 금액인지 확인"""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0 and abs(value - money(value)) < 1e-9


def new_order_ref() -> str:
    return uuid.uuid4().hex


class LedgerService:
    """
    지갑/보유종목/거래내역 원장.

    모든 변경 작업은 transaction() 안에서 실행된다.
    transaction() 은 사용자별 재진입 락을 잡고, 중첩되면 안쪽 블록은 flush 만 하며
    가장 바깥 블록이 성공했을 때만 commit 한다. 예외가 나면 전부 rollback 된다.
    """

    def __init__(self, now_func: Callable = utcnow):
        self.now = now_func

    @contextmanager
    def transaction(self, db: Session, user_id: int):
        with _lock_for(user_id):
            depth = db.info.get(_DEPTH_KEY, 0)
            db.info[_DEPTH_KEY] = depth + 1
            try:
                yield db
                if depth == 0:
                    db.commit()
                else:
                    db.flush()
            except PaperTradeError:
                if depth == 0:
                    db.rollback()
                raise
            except Exception as e:
                if depth == 0:
                    db.rollback()
                    logger.error(f"원장 트랜잭션 실패, 롤백: user_id={user_id} - {e}", exc_info=True)
                    raise TransactionFailed(str(e), user_id=user_id) from e
                raise
            finally:
                db.info[_DEPTH_KEY] = depth

    # --- 지갑 ---

    def get_or_create_wallet(self, db: Session, user_id: int) -> Wallet:
        with self.transaction(db, user_id):
            wallet = db.query(Wallet).filter(Wallet.user_id == user_id).with_for_update().first()
            if wallet is None:
                now = self.now()
                wallet = Wallet(
                    user_id=user_id,
                    balance=0.0,
                    total_invested=0.0,
                    total_current_value=0.0,
                    total_profit_loss=0.0,
                    created_at=now,
                    updated_at=now,
                )
                db.add(wallet)
                db.flush()
                logger.info(f"지갑 생성: user_id={user_id}")
        return wallet

    def adjust_balance(
        self,
        db: Session,
        user_id: int,
        amount: float,
        kind: str,
        description: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> float:
        if kind not in CREDIT_KINDS and kind not in DEBIT_KINDS:
            raise InvalidTransactionType(kind)
        if not is_cent_amount(amount):
            raise InvalidAmount(amount)
        amount = money(amount)

        with self.transaction(db, user_id):
            wallet = self.get_or_create_wallet(db, user_id)
            if kind in DEBIT_KINDS:
                if money(wallet.balance) < amount:
                    raise InsufficientBalance(required=amount, available=wallet.balance)
                new_balance = money(wallet.balance - amount)
            else:
                new_balance = money(wallet.balance + amount)

            now = self.now()
            wallet.balance = new_balance
            wallet.updated_at = now
            db.add(WalletTransaction(
                user_id=user_id,
                transaction_type=kind,
                amount=amount,
                balance_after=new_balance,
                description=description,
                reference_id=reference_id,
                created_at=now,
            ))
            db.flush()

        logger.debug(f"잔액 변경: user_id={user_id}, kind={kind}, amount={amount}, balance={new_balance}")
        return new_balance

    # --- 보유종목 ---

    def record_buy(
        self,
        db: Session,
        user_id: int,
        symbol: str,
        company_name: Optional[str],
        quantity: int,
        price: float,
        order_ref: Optional[str] = None,
    ) -> StockTransaction:
        if quantity is None or quantity <= 0:
            raise InvalidQuantity(quantity)

        with self.transaction(db, user_id):
            now = self.now()
            total = money(quantity * price)
            txn = StockTransaction(
                user_id=user_id,
                symbol=symbol,
                company_name=company_name,
                transaction_type="BUY",
                quantity=quantity,
                price=price,
                total_amount=total,
                order_ref=order_ref or new_order_ref(),
                transaction_date=now,
            )
            db.add(txn)

            holding = self._holding(db, user_id, symbol)
            if holding is None:
                holding = Holding(
                    user_id=user_id,
                    symbol=symbol,
                    company_name=company_name,
                    quantity=quantity,
                    average_price=price,
                    invested_amount=total,
                    first_buy_date=now,
                )
                db.add(holding)
            else:
                holding.quantity = holding.quantity + quantity
                holding.invested_amount = money(holding.invested_amount + total)
                holding.average_price = holding.invested_amount / holding.quantity
                if company_name:
                    holding.company_name = company_name
            self._mark_to_price(holding, price, now)
            db.flush()

        logger.info(f"매수 기록: user_id={user_id}, {symbol} x{quantity} @ {price}")
        return txn

    def record_sell(
        self,
        db: Session,
        user_id: int,
        symbol: str,
        quantity: int,
        price: float,
        order_ref: Optional[str] = None,
    ) -> StockTransaction:
        if quantity is None or quantity <= 0:
            raise InvalidQuantity(quantity)

        with self.transaction(db, user_id):
            holding = self._holding(db, user_id, symbol)
            held = holding.quantity if holding else 0
            if held < quantity:
                raise InsufficientShares(symbol, held, quantity)

            now = self.now()
            txn = StockTransaction(
                user_id=user_id,
                symbol=symbol,
                company_name=holding.company_name,
                transaction_type="SELL",
                quantity=quantity,
                price=price,
                total_amount=money(quantity * price),
                order_ref=order_ref or new_order_ref(),
                transaction_date=now,
            )
            db.add(txn)

            if quantity == held:
                db.delete(holding)
            else:
                remaining = held - quantity
                holding.invested_amount = money(holding.invested_amount * remaining / held)
                holding.quantity = remaining
                self._mark_to_price(holding, price, now)
            db.flush()

        logger.info(f"매도 기록: user_id={user_id}, {symbol} x{quantity} @ {price}")
        return txn

    def refresh_current_prices(self, db: Session, user_id: int, price_map: Dict[str, float]) -> int:
        if not price_map:
            return 0
        with self.transaction(db, user_id):
            now = self.now()
            holdings = db.query(Holding).filter(
                Holding.user_id == user_id,
                Holding.symbol.in_(list(price_map.keys())),
            ).all()
            for holding in holdings:
                price = price_map[holding.symbol]
                if price is not None:
                    self._mark_to_price(holding, price, now)
            db.flush()
        logger.debug(f"현재가 갱신: user_id={user_id}, {len(holdings)}개 종목")
        return len(holdings)

    def recompute_wallet_totals(self, db: Session, user_id: int) -> Wallet:
        """보유종목 전체를 다시 읽어 지갑 합계를 덮어쓴다."""
        with self.transaction(db, user_id):
            wallet = self.get_or_create_wallet(db, user_id)
            holdings = self.get_holdings(db, user_id)
            total_invested = sum(h.invested_amount for h in holdings)
            total_current = sum(
                h.current_value if h.current_value is not None else h.invested_amount
                for h in holdings
            )
            wallet.total_invested = money(total_invested)
            wallet.total_current_value = money(total_current)
            wallet.total_profit_loss = money(total_current - total_invested)
            wallet.updated_at = self.now()
            db.flush()
        return wallet

    # --- 조회 ---

    def get_holding(self, db: Session, user_id: int, symbol: str) -> Optional[Holding]:
        return db.query(Holding).filter(Holding.user_id == user_id, Holding.symbol == symbol).first()

    def get_holdings(self, db: Session, user_id: int) -> List[Holding]:
        return db.query(Holding).filter(Holding.user_id == user_id).order_by(Holding.symbol.asc()).all()

    def get_stock_transactions(self, db: Session, user_id: int, limit: int = 50, offset: int = 0) -> List[StockTransaction]:
        return db.query(StockTransaction).filter(
            StockTransaction.user_id == user_id
        ).order_by(
            StockTransaction.transaction_date.desc(), StockTransaction.id.desc()
        ).offset(offset).limit(limit).all()

    def get_wallet_transactions(self, db: Session, user_id: int, limit: int = 50, offset: int = 0) -> List[WalletTransaction]:
        return db.query(WalletTransaction).filter(
            WalletTransaction.user_id == user_id
        ).order_by(
            WalletTransaction.created_at.desc(), WalletTransaction.id.desc()
        ).offset(offset).limit(limit).all()

    def _holding(self, db: Session, user_id: int, symbol: str) -> Optional[Holding]:
        return db.query(Holding).filter(
            Holding.user_id == user_id, Holding.symbol == symbol
        ).with_for_update().first()

    def _mark_to_price(self, holding: Holding, price: float, now):
        holding.current_price = price
        holding.current_value = money(holding.quantity * price)
        holding.profit_loss = money(holding.current_value - holding.invested_amount)
        holding.profit_loss_percent = (
            money(holding.profit_loss / holding.invested_amount * 100) if holding.invested_amount else 0.0
        )
        holding.last_updated = now
