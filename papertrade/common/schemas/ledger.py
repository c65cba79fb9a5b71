from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

class WalletRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    balance: float
    total_invested: float
    total_current_value: float
    total_profit_loss: float
    updated_at: datetime

class WalletTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_type: str
    amount: float
    balance_after: float
    description: Optional[str] = None
    reference_id: Optional[str] = None
    created_at: datetime

class StockTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    symbol: str
    company_name: Optional[str] = None
    transaction_type: str
    quantity: int
    price: float
    total_amount: float
    order_ref: str
    transaction_date: datetime

class HoldingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    company_name: Optional[str] = None
    quantity: int
    average_price: float
    invested_amount: float
    current_price: Optional[float] = None
    current_value: Optional[float] = None
    profit_loss: Optional[float] = None
    profit_loss_percent: Optional[float] = None
    first_buy_date: datetime
    last_updated: datetime
