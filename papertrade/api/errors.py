"""도메인 예외를 HTTP 응답으로 변환한다."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from papertrade.common.schemas.result import OperationResult
from papertrade.common.utils.exceptions import NotFound, PaperTradeError

logger = logging.getLogger(__name__)

CATEGORY_STATUS = {
    "invalid": 400,
    "rejected": 409,
    "transient": 503,
    "error": 500,
}


def status_code_for(exc: PaperTradeError) -> int:
    if isinstance(exc, NotFound):
        return 404
    return CATEGORY_STATUS.get(exc.category, 500)


async def paper_trade_error_handler(request: Request, exc: PaperTradeError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 실패: [{exc.code}] {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} 거부: [{exc.code}] {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=OperationResult.from_error(exc).model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(PaperTradeError, paper_trade_error_handler)
