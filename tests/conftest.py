"""
pytest 공통 fixture 정의

Mock 저장소 기반 LedgerService, 임시 SQLite DB, 설정 파일 fixture.
"""

from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.ledger_store import (
    MockEntityDirectory,
    MockMovementStore,
    MockStockTakeStore,
)
from core.config.loader import Settings
from core.types import EntityRef
from service.balance_cache import BalanceCache
from service.ledger_service import LedgerService
from service.retry import RetryPolicy


# 테스트에서는 백오프 대기 없이 재시도
FAST_RETRY = RetryPolicy(
    conflict_max_attempts=3,
    storage_max_attempts=3,
    backoff_base_sec=0.0,
    backoff_max_sec=0.0,
)


@pytest.fixture
def stock_ref() -> EntityRef:
    """S-01 매장의 P-01 재고 엔티티"""
    return EntityRef.stock("P-01", "S-01")


@pytest.fixture
def supplier_ref() -> EntityRef:
    """매입처 원장 (NORMAL_CREDIT)"""
    return EntityRef.account("2100")


@pytest.fixture
def movement_store() -> MockMovementStore:
    return MockMovementStore()


@pytest.fixture
def directory() -> MockEntityDirectory:
    return MockEntityDirectory()


@pytest.fixture
def stock_take_store(movement_store: MockMovementStore) -> MockStockTakeStore:
    return MockStockTakeStore(movement_store)


@pytest.fixture
def service(
    movement_store: MockMovementStore,
    directory: MockEntityDirectory,
    stock_take_store: MockStockTakeStore,
) -> LedgerService:
    """Mock 저장소 기반 LedgerService (캐시 사용)"""
    return LedgerService(
        movements=movement_store,
        directory=directory,
        stock_takes=stock_take_store,
        cache=BalanceCache(max_entries=64),
        retry=FAST_RETRY,
    )


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncIterator[SQLiteAdapter]:
    """스키마가 초기화된 임시 SQLite DB"""
    adapter = SQLiteAdapter(tmp_path / "ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    try:
        yield adapter
    finally:
        await adapter.close()


@pytest.fixture
def reset_settings() -> None:
    """Settings 싱글턴 초기화 (테스트 전후)"""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    content = """# 테스트용 settings.yaml
database:
  path: data/test_ledger.db
  busy_timeout_ms: 5000

retry:
  conflict_max_attempts: 4
  storage_max_attempts: 2
  backoff_base_sec: 0.01
  backoff_max_sec: 0.5

cache:
  enabled: false
  max_entries: 16

logging:
  level: debug

web:
  host: 0.0.0.0
  port: 9000
"""
    settings_path = tmp_path / "settings.yaml"
    settings_path.write_text(content, encoding="utf-8")
    return settings_path
