"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # 잔액 캐시 최대 항목 수 (LRU)
    CACHE_MAX_ENTRIES: int = 1024

    # 재시도 정책
    CONFLICT_MAX_ATTEMPTS: int = 3  # ConcurrentAppendConflict 재조회 후 재시도
    STORAGE_MAX_ATTEMPTS: int = 5  # StorageUnavailable 지수 백오프
    BACKOFF_BASE_SEC: float = 0.05
    BACKOFF_MAX_SEC: float = 2.0

    # SQLite busy_timeout (밀리초)
    BUSY_TIMEOUT_MS: int = 30000


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "ledger.db"


# 0 (Decimal) - 비교/초기값용
ZERO: Decimal = Decimal("0")
