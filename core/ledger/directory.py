"""
엔티티 디렉토리

계정/재고 엔티티와 잔액 부호 규칙(polarity) 등록.
부호 규칙은 등록 시 한 번 정해지며 이후 변경 불가.
잔액 부호로 추론하지 않음.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from core.ledger.errors import PolarityConflictError, PolarityUndeterminedError
from core.types import EntityKind, EntityPolarity, EntityRef

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityRecord:
    """등록된 엔티티"""

    entity_ref: EntityRef
    polarity: EntityPolarity
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_ref": self.entity_ref.key,
            "kind": self.entity_ref.kind,
            "polarity": self.polarity.value,
            "account_id": self.entity_ref.account_id,
            "product_id": self.entity_ref.product_id,
            "store_id": self.entity_ref.store_id,
            "name": self.name,
        }


class EntityDirectory:
    """엔티티 디렉토리 (SQLite)

    사용 예시:
    ```python
    directory = EntityDirectory(db)
    await directory.register(EntityRef.account("2100"), EntityPolarity.NORMAL_CREDIT)
    polarity = await directory.get_polarity(EntityRef.account("2100"))
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def register(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity | str,
        name: str | None = None,
    ) -> EntityRecord:
        """엔티티 등록 (멱등)

        같은 부호 규칙으로 재등록하면 기존 레코드 반환.

        Raises:
            PolarityConflictError: 다른 부호 규칙으로 재등록 시도
        """
        requested = EntityPolarity(polarity)

        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT OR IGNORE INTO ledger_entity (
                    entity_ref, entity_kind, polarity,
                    account_id, product_id, store_id, name
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entity_ref.key,
                    entity_ref.kind,
                    requested.value,
                    entity_ref.account_id,
                    entity_ref.product_id,
                    entity_ref.store_id,
                    name,
                ),
            )

        record = await self.get(entity_ref)
        if record is None:
            raise RuntimeError(f"Entity registration lost: {entity_ref}")

        if record.polarity != requested:
            raise PolarityConflictError(entity_ref, record.polarity.value, requested.value)

        logger.debug(
            "엔티티 등록",
            extra={"entity_ref": entity_ref.key, "polarity": requested.value},
        )
        return record

    async def get(self, entity_ref: EntityRef) -> EntityRecord | None:
        """엔티티 조회"""
        row = await self.db.fetchone(
            "SELECT entity_ref, polarity, name FROM ledger_entity WHERE entity_ref = ?",
            (entity_ref.key,),
        )
        if not row:
            return None
        return _row_to_record(row)

    async def get_polarity(self, entity_ref: EntityRef) -> EntityPolarity:
        """부호 규칙 조회

        Raises:
            PolarityUndeterminedError: 미등록 엔티티
        """
        record = await self.get(entity_ref)
        if record is None:
            raise PolarityUndeterminedError(entity_ref)
        return record.polarity

    async def list_entities(self, kind: EntityKind | str | None = None) -> list[EntityRecord]:
        """엔티티 목록 (키 순)"""
        if kind is None:
            rows = await self.db.fetchall(
                "SELECT entity_ref, polarity, name FROM ledger_entity ORDER BY entity_ref"
            )
        else:
            rows = await self.db.fetchall(
                """
                SELECT entity_ref, polarity, name FROM ledger_entity
                WHERE entity_kind = ? ORDER BY entity_ref
                """,
                (EntityKind(kind).value,),
            )
        return [_row_to_record(row) for row in rows]

    async def list_stock_entities(self, store_id: str) -> list[EntityRef]:
        """매장의 재고 엔티티 목록 (상품 id 순)"""
        rows = await self.db.fetchall(
            """
            SELECT entity_ref FROM ledger_entity
            WHERE entity_kind = ? AND store_id = ?
            ORDER BY product_id
            """,
            (EntityKind.STOCK.value, store_id),
        )
        return [EntityRef.parse(row[0]) for row in rows]


def _row_to_record(row: tuple[Any, ...]) -> EntityRecord:
    return EntityRecord(
        entity_ref=EntityRef.parse(row[0]),
        polarity=EntityPolarity(row[1]),
        name=row[2],
    )
