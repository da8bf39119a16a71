"""
Movement 저장소

append-only Movement 저장 및 조회.
id는 SQLite AUTOINCREMENT로 부여되어 단조 증가 보장.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Sequence

from core.ledger.errors import ConcurrentAppendConflict
from core.ledger.movement import Movement, MovementStats
from core.types import EntityRef
from core.utils.timezone import parse_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


MOVEMENT_COLUMNS = """
    id, entity_ref, in_amount, out_amount, kind, reference, memo, created_at
"""


def row_to_movement(row: tuple[Any, ...]) -> Movement:
    """DB 행 → Movement"""
    return Movement(
        id=row[0],
        entity_ref=EntityRef.parse(row[1]),
        in_amount=Decimal(row[2]),
        out_amount=Decimal(row[3]),
        kind=row[4],
        reference=row[5],
        memo=row[6],
        created_at=parse_utc(row[7]),
    )


async def insert_movement(db: SQLiteAdapter, movement: Movement) -> Movement:
    """Movement 1건 INSERT (커밋하지 않음)

    호출자의 트랜잭션 안에서 사용.
    전달된 id(임시 시퀀스 키 포함)는 무시하고 저장소 id를 부여.

    Returns:
        저장소 id가 부여된 Movement
    """
    cursor = await db.execute(
        """
        INSERT INTO movement (
            entity_ref, in_amount, out_amount, kind, reference, memo, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            movement.entity_ref.key,
            str(movement.in_amount),
            str(movement.out_amount),
            movement.kind,
            movement.reference,
            movement.memo,
            movement.created_at.isoformat(),
        ),
    )
    return movement.with_id(cursor.lastrowid)


class MovementStore:
    """Movement 저장소

    Args:
        db: SQLite 어댑터

    사용 예시:
    ```python
    store = MovementStore(db)
    stored = await store.append(Movement.incoming(ref, "100", MovementKind.RECEIPT))
    movements = await store.query(ref)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def append(
        self,
        movement: Movement,
        expected_last_id: int | None = None,
    ) -> Movement:
        """Movement 저장

        Args:
            movement: 저장할 Movement
            expected_last_id: 낙관적 동시성 검사용 엔티티의 직전 마지막 id
                (None: 검사 안 함, 0: Movement가 없어야 함)

        Returns:
            id가 부여된 Movement

        Raises:
            ConcurrentAppendConflict: 다른 writer가 먼저 append한 경우
        """
        async with self.db.transaction():
            stored = await insert_movement(self.db, movement)

            if expected_last_id is not None:
                # INSERT 이후 검사: 쓰기 잠금을 보유한 상태에서 직전 id 확인
                actual = await self._last_id_before(movement.entity_ref, stored.id)
                if (actual or 0) != expected_last_id:
                    raise ConcurrentAppendConflict(
                        movement.entity_ref, expected_last_id, actual or 0
                    )

        logger.debug(
            "Movement 저장 완료",
            extra={"movement_id": stored.id, "entity_ref": stored.entity_ref.key},
        )
        return stored

    async def append_many(self, movements: Sequence[Movement]) -> list[Movement]:
        """여러 Movement를 하나의 트랜잭션으로 저장 (전부 또는 전무)"""
        stored: list[Movement] = []
        async with self.db.transaction():
            for movement in movements:
                stored.append(await insert_movement(self.db, movement))

        logger.debug(f"Saved {len(stored)} movements")
        return stored

    async def query(
        self,
        entity_ref: EntityRef,
        from_id: int | None = None,
        to_id: int | None = None,
    ) -> list[Movement]:
        """엔티티 Movement 조회 (id 오름차순, 경계 포함)

        Args:
            entity_ref: 엔티티
            from_id: 시작 id (포함, None이면 처음부터)
            to_id: 끝 id (포함, None이면 마지막까지)
        """
        sql = f"SELECT {MOVEMENT_COLUMNS} FROM movement WHERE entity_ref = ?"
        params: list[Any] = [entity_ref.key]

        if from_id is not None:
            sql += " AND id >= ?"
            params.append(from_id)

        if to_id is not None:
            sql += " AND id <= ?"
            params.append(to_id)

        sql += " ORDER BY id ASC"

        rows = await self.db.fetchall(sql, tuple(params))
        return [row_to_movement(row) for row in rows]

    async def query_by_reference(self, reference: str) -> list[Movement]:
        """참조값으로 Movement 조회 (id 오름차순)"""
        rows = await self.db.fetchall(
            f"SELECT {MOVEMENT_COLUMNS} FROM movement WHERE reference = ? ORDER BY id ASC",
            (reference,),
        )
        return [row_to_movement(row) for row in rows]

    async def stats(self, entity_ref: EntityRef) -> MovementStats:
        """엔티티 Movement 수 / 마지막 id"""
        row = await self.db.fetchone(
            "SELECT COUNT(*), MAX(id) FROM movement WHERE entity_ref = ?",
            (entity_ref.key,),
        )
        if not row:
            return MovementStats(count=0, max_id=None)
        return MovementStats(count=row[0] or 0, max_id=row[1])

    async def _last_id_before(self, entity_ref: EntityRef, movement_id: int) -> int | None:
        row = await self.db.fetchone(
            "SELECT MAX(id) FROM movement WHERE entity_ref = ? AND id < ?",
            (entity_ref.key, movement_id),
        )
        return row[0] if row else None
