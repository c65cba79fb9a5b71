from datetime import datetime, timezone


def utcnow() -> datetime:
    """DB 에 저장하는 모든 시각은 tz 정보 없는 UTC 로 통일한다."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_timestamp(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)
