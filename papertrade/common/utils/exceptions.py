from typing import Any, Dict, List, Optional


class PaperTradeError(Exception):
    """
    모든 도메인 오류의 기반 클래스.

    category 는 표현 계층이 오류를 어떻게 보여줄지 결정하는 데 사용한다.
        - "transient": 데이터가 없음, 잠시 후 재시도
        - "rejected": 비즈니스 규칙에 의해 거부됨
        - "invalid": 잘못된 입력 (호출자 버그)
        - "error": 내부 오류
    """
    code = "PAPERTRADE_ERROR"
    category = "error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "context": self.context,
        }


# --- 외부 시세 API 오류 ---

class UpstreamError(PaperTradeError):
    code = "UPSTREAM_ERROR"
    category = "transient"


class EndpointUnreachable(UpstreamError):
    """엔드포인트 연결 실패, 타임아웃, HTTP 오류 응답"""
    code = "ENDPOINT_UNREACHABLE"

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"Endpoint '{endpoint}' unreachable: {reason}", endpoint=endpoint)


class EndpointParseError(UpstreamError):
    """응답은 받았지만 시세 데이터로 해석할 수 없음"""
    code = "ENDPOINT_PARSE_ERROR"

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"Endpoint '{endpoint}' returned an unparseable payload: {reason}", endpoint=endpoint)


class AllEndpointsFailed(UpstreamError):
    code = "ALL_ENDPOINTS_FAILED"

    def __init__(self, symbol: str, attempts: Optional[List[str]] = None):
        self.symbol = symbol
        self.attempts = attempts or []
        super().__init__(f"All endpoints failed for {symbol}", symbol=symbol, attempts=self.attempts)


# --- 입력 검증 오류 ---

class InvalidInputError(PaperTradeError):
    code = "INVALID_INPUT"
    category = "invalid"


class InvalidQuantity(InvalidInputError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity: Any):
        super().__init__("Quantity must be greater than 0", quantity=quantity)


class InvalidAmount(InvalidInputError):
    code = "INVALID_AMOUNT"

    def __init__(self, amount: Any):
        super().__init__("Amount must be greater than 0 with at most 2 decimal places", amount=amount)


class InvalidTransactionType(InvalidInputError):
    code = "INVALID_TRANSACTION_TYPE"

    def __init__(self, kind: Any):
        super().__init__(f"Invalid transaction type: {kind}", kind=kind)


# --- 비즈니스 규칙 오류 ---

class BusinessRuleError(PaperTradeError):
    code = "BUSINESS_RULE"
    category = "rejected"


class InsufficientBalance(BusinessRuleError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance. Required: {required:.2f}, Available: {available:.2f}",
            required=required,
            available=available,
        )


class InsufficientShares(BusinessRuleError):
    code = "INSUFFICIENT_SHARES"

    def __init__(self, symbol: str, held: int, requested: int):
        self.symbol = symbol
        self.held = held
        self.requested = requested
        super().__init__(
            f"Insufficient shares of {symbol}. You own {held} shares, trying to sell {requested}",
            symbol=symbol,
            held=held,
            requested=requested,
        )


class PriceUnavailable(BusinessRuleError):
    code = "PRICE_UNAVAILABLE"
    category = "transient"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Could not fetch current price for {symbol}", symbol=symbol)


class NotFound(BusinessRuleError):
    code = "NOT_FOUND"

    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No stock found for query: {query}", query=query)


# --- 원자성 오류 ---

class TransactionFailed(PaperTradeError):
    code = "TRANSACTION_FAILED"
    category = "error"

    def __init__(self, reason: str, **context: Any):
        super().__init__(f"Transaction failed and was rolled back: {reason}", **context)


# --- 인증 오류 ---

class UserAlreadyExistsException(Exception):
    """사용자가 이미 존재할 때 발생하는 오류"""
    pass

class InvalidCredentialsException(Exception):
    """인증 정보가 유효하지 않을 때 발생하는 오류"""
    pass
