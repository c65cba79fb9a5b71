import httpx
from httpx import AsyncClient

from papertrade.common.config import settings

# Yahoo Finance 는 브라우저처럼 보이지 않는 요청을 자주 차단한다
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Origin": "https://finance.yahoo.com",
    "Referer": "https://finance.yahoo.com/",
}

def get_market_client(timeout: float = None) -> AsyncClient:
    """
    외부 시세 API 호출용 AsyncClient 인스턴스를 반환합니다.
    연결 단계 오류에 한해 1번 재시도하며, 모든 요청은 timeout(기본 15초) 안에 끝나야 합니다.
    timeout 을 넘긴 요청은 실패한 엔드포인트로 간주되어 다음 엔드포인트로 넘어갑니다.
    """
    transport = httpx.AsyncHTTPTransport(retries=1)
    if timeout is None:
        timeout = settings.UPSTREAM_TIMEOUT_SECONDS
    return AsyncClient(transport=transport, timeout=timeout, headers=DEFAULT_HEADERS, follow_redirects=True)
