from typing import Any, Dict, Optional

from pydantic import BaseModel

from papertrade.common.utils.exceptions import PaperTradeError


class ErrorDetail(BaseModel):
    code: str
    category: str
    message: str
    context: Dict[str, Any] = {}


class OperationResult(BaseModel):
    """
    API 공통 응답 봉투.
    성공이면 data, 실패면 error 가 채워진다.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorDetail] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def from_error(cls, exc: PaperTradeError) -> "OperationResult":
        return cls(success=False, error=ErrorDetail(**exc.to_dict()))
