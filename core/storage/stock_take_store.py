"""
StockTakeStore - 재고 실사 세션 저장소

stock_take_session / stock_take_line 테이블 관리.

전기(post)는 하나의 트랜잭션으로 수행:
1. DRAFT → POSTED 조건부 UPDATE (rowcount == 1 이어야 함)
2. 조정 Movement INSERT

조건부 UPDATE가 멱등성 가드 역할을 하므로 같은 세션을 두 번 전기하면
두 번째 호출은 조정 Movement를 하나도 쓰지 않고 AlreadyPostedError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Sequence

from core.ledger.errors import (
    AlreadyPostedError,
    LineNotFoundError,
    SessionDiscardedError,
    SessionNotFoundError,
)
from core.ledger.movement import Movement
from core.ledger.stock_take import StockTakeLine, StockTakeSession
from core.ledger.store import insert_movement
from core.types import StockTakeStatus
from core.utils.timezone import parse_utc, utc_now

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


class StockTakeStore:
    """재고 실사 세션 저장소

    사용 예시:
    ```python
    store = StockTakeStore(db)
    await store.create(session)
    await store.update_count(session.session_id, "P-01", Decimal("7"))
    posted = await store.post(session.session_id, adjustments)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def create(self, session: StockTakeSession) -> None:
        """새 세션과 스냅샷 항목 저장"""
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO stock_take_session (session_id, store_id, status, started_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    session.session_id,
                    session.store_id,
                    session.status,
                    session.started_at.isoformat(),
                ),
            )
            if session.lines:
                await self.db.executemany(
                    """
                    INSERT INTO stock_take_line (
                        session_id, product_id, system_quantity,
                        snapshot_as_of, counted_quantity, line_order
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            session.session_id,
                            line.product_id,
                            str(line.system_quantity),
                            line.snapshot_as_of,
                            _opt_str(line.counted_quantity),
                            order,
                        )
                        for order, line in enumerate(session.lines)
                    ],
                )

        logger.info(
            "재고 실사 세션 생성",
            extra={
                "session_id": session.session_id,
                "store_id": session.store_id,
                "line_count": len(session.lines),
            },
        )

    async def get(self, session_id: str) -> StockTakeSession:
        """세션 조회

        Raises:
            SessionNotFoundError: 세션 없음
        """
        row = await self.db.fetchone(
            """
            SELECT session_id, store_id, status, started_at, posted_at, discarded_at
            FROM stock_take_session WHERE session_id = ?
            """,
            (session_id,),
        )
        if not row:
            raise SessionNotFoundError(session_id)

        line_rows = await self.db.fetchall(
            """
            SELECT product_id, system_quantity, snapshot_as_of, counted_quantity
            FROM stock_take_line WHERE session_id = ?
            ORDER BY line_order
            """,
            (session_id,),
        )

        return StockTakeSession(
            session_id=row[0],
            store_id=row[1],
            status=row[2],
            started_at=parse_utc(row[3]),
            posted_at=parse_utc(row[4]) if row[4] else None,
            discarded_at=parse_utc(row[5]) if row[5] else None,
            lines=[_row_to_line(r) for r in line_rows],
        )

    async def list_sessions(
        self,
        store_id: str | None = None,
        status: StockTakeStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        """세션 목록 (최근 개시 순, 항목 제외)"""
        sql = """
            SELECT session_id, store_id, status, started_at, posted_at, discarded_at
            FROM stock_take_session WHERE 1=1
        """
        params: list[Any] = []
        if store_id is not None:
            sql += " AND store_id = ?"
            params.append(store_id)
        if status is not None:
            sql += " AND status = ?"
            params.append(StockTakeStatus(status).value)
        sql += " ORDER BY started_at DESC"

        rows = await self.db.fetchall(sql, tuple(params))
        return [
            {
                "session_id": r[0],
                "store_id": r[1],
                "status": r[2],
                "started_at": r[3],
                "posted_at": r[4],
                "discarded_at": r[5],
            }
            for r in rows
        ]

    async def update_count(
        self,
        session_id: str,
        product_id: str,
        counted: Decimal | None,
    ) -> None:
        """실사 수량 저장 (DRAFT 세션만)

        Raises:
            SessionNotFoundError, AlreadyPostedError, SessionDiscardedError
        """
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                UPDATE stock_take_line SET counted_quantity = ?
                WHERE session_id = ? AND product_id = ?
                  AND EXISTS (
                      SELECT 1 FROM stock_take_session
                      WHERE session_id = ? AND status = 'DRAFT'
                  )
                """,
                (_opt_str(counted), session_id, product_id, session_id),
            )
            if cursor.rowcount != 1:
                await self._raise_not_editable(session_id, product_id)

    async def discard(self, session_id: str, at: datetime | None = None) -> None:
        """세션 폐기 (Movement 없음)

        Raises:
            SessionNotFoundError, AlreadyPostedError, SessionDiscardedError
        """
        discarded_at = at or utc_now()
        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                UPDATE stock_take_session SET status = 'DISCARDED', discarded_at = ?
                WHERE session_id = ? AND status = 'DRAFT'
                """,
                (discarded_at.isoformat(), session_id),
            )
            if cursor.rowcount != 1:
                await self._raise_not_editable(session_id)

        logger.info("재고 실사 세션 폐기", extra={"session_id": session_id})

    async def post(
        self,
        session_id: str,
        adjustments: Sequence[Movement],
        at: datetime | None = None,
    ) -> list[Movement]:
        """세션 전기 (상태 전이 + 조정 Movement를 하나의 트랜잭션으로)

        Args:
            session_id: 세션 ID
            adjustments: 조정 Movement (임시 키는 저장소 id로 재부여)
            at: 전기 시각

        Returns:
            저장된 조정 Movement

        Raises:
            AlreadyPostedError: 이미 전기됨 (Movement 기록 없음)
            SessionDiscardedError: 폐기됨
            SessionNotFoundError: 세션 없음
        """
        posted_at = at or utc_now()
        stored: list[Movement] = []

        async with self.db.transaction():
            cursor = await self.db.execute(
                """
                UPDATE stock_take_session SET status = 'POSTED', posted_at = ?
                WHERE session_id = ? AND status = 'DRAFT'
                """,
                (posted_at.isoformat(), session_id),
            )
            if cursor.rowcount != 1:
                await self._raise_not_editable(session_id)

            for movement in adjustments:
                stored.append(await insert_movement(self.db, movement))

        logger.info(
            "재고 실사 전기 완료",
            extra={"session_id": session_id, "adjustment_count": len(stored)},
        )
        return stored

    async def _raise_not_editable(self, session_id: str, product_id: str | None = None) -> None:
        row = await self.db.fetchone(
            "SELECT status FROM stock_take_session WHERE session_id = ?",
            (session_id,),
        )
        if not row:
            raise SessionNotFoundError(session_id)
        if row[0] == StockTakeStatus.POSTED.value:
            raise AlreadyPostedError(session_id)
        if row[0] == StockTakeStatus.DISCARDED.value:
            raise SessionDiscardedError(session_id)

        # DRAFT인데 갱신 실패 → 세션에 없는 상품
        raise LineNotFoundError(session_id, str(product_id))


def _opt_str(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _row_to_line(row: tuple[Any, ...]) -> StockTakeLine:
    return StockTakeLine(
        product_id=row[0],
        system_quantity=Decimal(row[1]),
        snapshot_as_of=row[2],
        counted_quantity=Decimal(row[3]) if row[3] is not None else None,
    )
