"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
Web과 스크립트가 동시에 접근 가능하도록 설정.

잠김/열기 실패 등 일시 장애는 StorageUnavailable로 변환하여
Service 계층에서 재시도 가능하도록 함.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterator

import aiosqlite

from core.constants import Defaults
from core.ledger.errors import StorageUnavailable

logger = logging.getLogger(__name__)


# 일시 장애로 간주하는 OperationalError 메시지
TRANSIENT_ERROR_MARKERS: tuple[str, ...] = (
    "database is locked",
    "database is busy",
    "unable to open database",
    "disk i/o error",
)


def is_transient_error(error: BaseException) -> bool:
    """재시도 가능한 SQLite 오류인지 확인"""
    if not isinstance(error, sqlite3.OperationalError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간

    Returns:
        aiosqlite 연결 객체

    Raises:
        StorageUnavailable: DB 파일을 열 수 없는 경우
    """
    db_path_str = str(db_path)
    in_memory = db_path_str == ":memory:"

    # 디렉토리가 없으면 생성
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        if readonly and not in_memory:
            conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
        else:
            conn = await aiosqlite.connect(db_path_str)

        if not in_memory:
            await conn.execute("PRAGMA journal_mode=WAL")

        # 동시 접근 설정
        await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")

        # 외래 키 제약 활성화
        await conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.OperationalError as e:
        if is_transient_error(e):
            raise StorageUnavailable(f"SQLite 연결 실패: {e}", db_path=db_path_str) from e
        raise

    logger.info(
        "SQLite 연결 생성",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    하나의 aiosqlite 연결을 보유하며 모든 쿼리를 이 연결로 직렬화.
    일시 장애(OperationalError 중 잠김/열기 실패)는 StorageUnavailable로 변환.

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        async with db.transaction():
            await db.execute("INSERT INTO ...")
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
    ):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self.readonly = readonly
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        # 연결 하나를 여러 코루틴이 공유하므로 트랜잭션/구문 단위로 직렬화
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """현재 태스크가 이 연결을 점유 중인지 여부"""
        return self._owner is not None and self._owner is asyncio.current_task()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    @contextmanager
    def _translate(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.OperationalError as e:
            if is_transient_error(e):
                raise StorageUnavailable(f"SQLite {action} 실패: {e}", db_path=str(self.db_path)) from e
            raise

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        """연결 점유 (같은 태스크 안에서는 재진입)"""
        if self.in_transaction:
            yield
            return

        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield
            finally:
                self._owner = None

    async def connect(self) -> None:
        """연결 생성 (이미 연결되어 있으면 무시)"""
        if self._conn is None:
            self._conn = await create_connection(
                self.db_path, self.readonly, self.busy_timeout_ms
            )

    async def close(self) -> None:
        if self._conn is None:
            return
        async with self._exclusive():
            conn, self._conn = self._conn, None
            await conn.close()
        logger.info("SQLite 연결 종료", extra={"db_path": str(self.db_path)})

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행

        다른 태스크의 transaction() 블록이 끝날 때까지 대기.

        Raises:
            StorageUnavailable: 잠김 등 일시 장애
        """
        conn = self._require_conn()
        async with self._exclusive():
            with self._translate("실행"):
                return await conn.execute(sql, parameters or ())

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        conn = self._require_conn()
        async with self._exclusive():
            with self._translate("실행"):
                return await conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        async with self._exclusive():
            cursor = await self.execute(sql, parameters)
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        async with self._exclusive():
            cursor = await self.execute(sql, parameters)
            return list(await cursor.fetchall())

    async def commit(self) -> None:
        if self._conn is None:
            return
        async with self._exclusive():
            with self._translate("커밋"):
                await self._conn.commit()

    async def rollback(self) -> None:
        if self._conn is None:
            return
        async with self._exclusive():
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 범위

        블록 동안 연결을 점유하여 다른 코루틴의 구문이 끼어들지 않음.
        정상 종료 시 커밋, 예외(취소 포함) 시 롤백 후 재전파.
        같은 태스크에서 중첩하면 바깥 트랜잭션에 합류.
        """
        conn = self._require_conn()
        if self.in_transaction:
            yield conn
            return

        async with self._exclusive():
            try:
                yield conn
                await self.commit()
            except BaseException:
                await conn.rollback()
                raise

    async def table_exists(self, table_name: str) -> bool:
        row = await self.fetchone(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,),
        )
        return row is not None

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """원장 스키마 초기화 (멱등)"""
    from core.ledger.schema import init_ledger_schema

    await init_ledger_schema(adapter)
