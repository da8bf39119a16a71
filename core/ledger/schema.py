"""
Ledger 스키마 초기화

Web/스크립트 시작 시 자동으로 Ledger 테이블 생성.
CREATE IF NOT EXISTS 패턴으로 안전하게 동작.

불변식 (트리거로 강제):
- movement: append-only (UPDATE/DELETE 금지)
- stock_take_session: DRAFT가 아닌 세션의 상태 변경 금지
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 인덱스 + 트리거)

    이미 존재하는 경우 안전하게 건너뜀 (IF NOT EXISTS).

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await _create_ledger_triggers(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # ledger_entity 테이블 (계정/상품 디렉토리 - 부호 규칙 고정)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_entity (
            entity_ref       TEXT PRIMARY KEY,
            entity_kind      TEXT NOT NULL,
            polarity         TEXT NOT NULL,
            account_id       TEXT,
            product_id       TEXT,
            store_id         TEXT,
            name             TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # movement 테이블 (append-only)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS movement (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            entity_ref       TEXT NOT NULL,
            in_amount        TEXT NOT NULL DEFAULT '0',
            out_amount       TEXT NOT NULL DEFAULT '0',
            kind             TEXT NOT NULL,
            reference        TEXT,
            memo             TEXT,
            created_at       TEXT NOT NULL,
            FOREIGN KEY (entity_ref) REFERENCES ledger_entity(entity_ref)
        )
    """)

    # stock_take_session 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS stock_take_session (
            session_id       TEXT PRIMARY KEY,
            store_id         TEXT NOT NULL,
            status           TEXT NOT NULL DEFAULT 'DRAFT',
            started_at       TEXT NOT NULL,
            posted_at        TEXT,
            discarded_at     TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # stock_take_line 테이블 (세션 개시 시점 스냅샷)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS stock_take_line (
            session_id       TEXT NOT NULL,
            product_id       TEXT NOT NULL,
            system_quantity  TEXT NOT NULL,
            snapshot_as_of   INTEGER,
            counted_quantity TEXT,
            line_order       INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (session_id, product_id),
            FOREIGN KEY (session_id) REFERENCES stock_take_session(session_id)
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """인덱스 생성"""

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_movement_entity
        ON movement(entity_ref, id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_movement_reference
        ON movement(reference)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entity_store
        ON ledger_entity(entity_kind, store_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_stock_take_session_store
        ON stock_take_session(store_id, status)
    """)


async def _create_ledger_triggers(db: "SQLiteAdapter") -> None:
    """불변식 트리거 생성"""

    await db.execute("""
        CREATE TRIGGER IF NOT EXISTS trg_movement_no_update
        BEFORE UPDATE ON movement
        BEGIN
            SELECT RAISE(ABORT, 'movement is append-only');
        END
    """)

    await db.execute("""
        CREATE TRIGGER IF NOT EXISTS trg_movement_no_delete
        BEFORE DELETE ON movement
        BEGIN
            SELECT RAISE(ABORT, 'movement is append-only');
        END
    """)

    await db.execute("""
        CREATE TRIGGER IF NOT EXISTS trg_stock_take_session_final
        BEFORE UPDATE OF status ON stock_take_session
        WHEN OLD.status <> 'DRAFT'
        BEGIN
            SELECT RAISE(ABORT, 'stock take session is final');
        END
    """)

    await db.execute("""
        CREATE TRIGGER IF NOT EXISTS trg_stock_take_line_frozen
        BEFORE UPDATE ON stock_take_line
        WHEN (
            SELECT status FROM stock_take_session
            WHERE session_id = OLD.session_id
        ) <> 'DRAFT'
        BEGIN
            SELECT RAISE(ABORT, 'stock take session is final');
        END
    """)
