"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
SQLite 구현: core.ledger.store, core.ledger.directory, core.storage.stock_take_store
Mock 구현: adapters.mock.ledger_store
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, Sequence, runtime_checkable

from core.ledger.directory import EntityRecord
from core.ledger.movement import Movement, MovementStats
from core.ledger.stock_take import StockTakeSession
from core.types import EntityKind, EntityPolarity, EntityRef, StockTakeStatus


@runtime_checkable
class IMovementStore(Protocol):
    """Movement 저장소 인터페이스

    append-only. 부여되는 id는 저장소 전체에서 단조 증가.
    """

    async def append(
        self,
        movement: Movement,
        expected_last_id: int | None = None,
    ) -> Movement:
        """Movement 저장

        Args:
            movement: 저장할 Movement
            expected_last_id: 엔티티의 직전 마지막 id (None: 검사 안 함, 0: 비어 있어야 함)

        Returns:
            id가 부여된 Movement

        Raises:
            ConcurrentAppendConflict: 기대한 마지막 id와 다름
            StorageUnavailable: 일시 장애
        """
        ...

    async def append_many(self, movements: Sequence[Movement]) -> list[Movement]:
        """여러 Movement를 원자적으로 저장"""
        ...

    async def query(
        self,
        entity_ref: EntityRef,
        from_id: int | None = None,
        to_id: int | None = None,
    ) -> list[Movement]:
        """엔티티 Movement 조회 (id 오름차순, 경계 포함)"""
        ...

    async def query_by_reference(self, reference: str) -> list[Movement]:
        """참조값으로 Movement 조회"""
        ...

    async def stats(self, entity_ref: EntityRef) -> MovementStats:
        """엔티티 Movement 수 / 마지막 id"""
        ...


@runtime_checkable
class IEntityDirectory(Protocol):
    """엔티티 디렉토리 인터페이스"""

    async def register(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity | str,
        name: str | None = None,
    ) -> EntityRecord:
        """엔티티 등록 (같은 부호 규칙이면 멱등)

        Raises:
            PolarityConflictError: 다른 부호 규칙으로 재등록
        """
        ...

    async def get(self, entity_ref: EntityRef) -> EntityRecord | None:
        """엔티티 조회"""
        ...

    async def get_polarity(self, entity_ref: EntityRef) -> EntityPolarity:
        """부호 규칙 조회

        Raises:
            PolarityUndeterminedError: 미등록
        """
        ...

    async def list_entities(self, kind: EntityKind | str | None = None) -> list[EntityRecord]:
        """엔티티 목록"""
        ...

    async def list_stock_entities(self, store_id: str) -> list[EntityRef]:
        """매장 재고 엔티티 목록"""
        ...


@runtime_checkable
class IStockTakeStore(Protocol):
    """재고 실사 세션 저장소 인터페이스"""

    async def create(self, session: StockTakeSession) -> None:
        """세션 저장"""
        ...

    async def get(self, session_id: str) -> StockTakeSession:
        """세션 조회

        Raises:
            SessionNotFoundError: 세션 없음
        """
        ...

    async def list_sessions(
        self,
        store_id: str | None = None,
        status: StockTakeStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        """세션 목록"""
        ...

    async def update_count(
        self,
        session_id: str,
        product_id: str,
        counted: Decimal | None,
    ) -> None:
        """실사 수량 저장 (DRAFT만)"""
        ...

    async def discard(self, session_id: str, at: datetime | None = None) -> None:
        """세션 폐기"""
        ...

    async def post(
        self,
        session_id: str,
        adjustments: Sequence[Movement],
        at: datetime | None = None,
    ) -> list[Movement]:
        """상태 전이 + 조정 Movement 저장 (원자적)

        Raises:
            AlreadyPostedError: 이미 전기됨 (아무것도 쓰지 않음)
        """
        ...
