"""
핵심 유틸리티 모듈

- timezone: UTC 저장/파싱 헬퍼
"""

from core.utils.timezone import ensure_utc, parse_utc, utc_now

__all__ = [
    "utc_now",
    "ensure_utc",
    "parse_utc",
]
