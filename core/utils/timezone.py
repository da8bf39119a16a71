"""
타임존 유틸리티

내부 저장: UTC (ISO 8601 문자열) 원칙 준수를 위한 헬퍼 함수
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """현재 UTC 시각 (timezone-aware)"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """UTC datetime으로 정규화

    Args:
        dt: datetime 객체 (naive면 UTC로 간주)

    Returns:
        UTC 타임존의 datetime
    """
    if dt.tzinfo is None:
        # naive datetime은 UTC로 간주
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_utc(value: str | None) -> datetime | None:
    """DB에 저장된 ISO 문자열을 UTC datetime으로 변환

    Example:
        >>> parse_utc("2026-02-20T16:00:00+00:00").hour
        16
        >>> parse_utc(None) is None
        True
    """
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))
