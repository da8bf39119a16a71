"""
Mock 원장 저장소

테스트용 인메모리 저장소.
IMovementStore / IEntityDirectory / IStockTakeStore Protocol 준수.

장애 주입:
- fail_times: 다음 N회 호출을 StorageUnavailable로 실패
- race_with(): 다음 append 직전에 다른 writer의 Movement를 끼워 넣음
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from core.ledger.directory import EntityRecord
from core.ledger.errors import (
    AlreadyPostedError,
    ConcurrentAppendConflict,
    LineNotFoundError,
    PolarityConflictError,
    PolarityUndeterminedError,
    SessionDiscardedError,
    SessionNotFoundError,
    StorageUnavailable,
)
from core.ledger.movement import Movement, MovementStats
from core.ledger.stock_take import StockTakeSession
from core.types import EntityKind, EntityPolarity, EntityRef, StockTakeStatus
from core.utils.timezone import utc_now


@dataclass
class CallRecord:
    """호출 기록"""

    method: str
    args: dict[str, Any] = field(default_factory=dict)


class MockMovementStore:
    """Mock Movement 저장소

    사용 예시:
    ```python
    store = MockMovementStore()
    store.fail_times = 2  # 다음 2회 호출 StorageUnavailable

    # 동시 writer 시뮬레이션
    store.race_with(Movement.incoming(ref, "5", MovementKind.RECEIPT))
    ```
    """

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.movements: list[Movement] = []
        self.calls: list[CallRecord] = []
        self._next_id = 1
        self._racing: list[Movement] = []

    # -------------------------------------------------------------------------
    # 테스트 헬퍼 메서드
    # -------------------------------------------------------------------------

    def race_with(self, movement: Movement) -> None:
        """다음 append 직전에 저장될 Movement 등록 (다른 writer 역할)"""
        self._racing.append(movement)

    def get_calls(self, method: str) -> list[CallRecord]:
        """특정 메서드 호출 기록"""
        return [c for c in self.calls if c.method == method]

    def _check_failure(self, method: str, **args: Any) -> None:
        self.calls.append(CallRecord(method=method, args=args))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise StorageUnavailable(f"Mock storage unavailable ({method})")

    def _insert(self, movement: Movement) -> Movement:
        stored = movement.with_id(self._next_id)
        self._next_id += 1
        self.movements.append(stored)
        return stored

    def _last_id(self, entity_ref: EntityRef) -> int:
        ids = [m.id for m in self.movements if m.entity_ref == entity_ref]
        return max(ids) if ids else 0

    # -------------------------------------------------------------------------
    # IMovementStore
    # -------------------------------------------------------------------------

    async def append(
        self,
        movement: Movement,
        expected_last_id: int | None = None,
    ) -> Movement:
        self._check_failure("append", movement=movement, expected_last_id=expected_last_id)

        while self._racing:
            self._insert(self._racing.pop(0))

        if expected_last_id is not None:
            actual = self._last_id(movement.entity_ref)
            if actual != expected_last_id:
                raise ConcurrentAppendConflict(movement.entity_ref, expected_last_id, actual)

        return self._insert(movement)

    async def append_many(self, movements: Sequence[Movement]) -> list[Movement]:
        self._check_failure("append_many", count=len(movements))
        return [self._insert(m) for m in movements]

    async def query(
        self,
        entity_ref: EntityRef,
        from_id: int | None = None,
        to_id: int | None = None,
    ) -> list[Movement]:
        self._check_failure("query", entity_ref=entity_ref, from_id=from_id, to_id=to_id)
        return [
            m for m in self.movements
            if m.entity_ref == entity_ref
            and (from_id is None or m.id >= from_id)
            and (to_id is None or m.id <= to_id)
        ]

    async def query_by_reference(self, reference: str) -> list[Movement]:
        self._check_failure("query_by_reference", reference=reference)
        return [m for m in self.movements if m.reference == reference]

    async def stats(self, entity_ref: EntityRef) -> MovementStats:
        self._check_failure("stats", entity_ref=entity_ref)
        ids = [m.id for m in self.movements if m.entity_ref == entity_ref]
        return MovementStats(count=len(ids), max_id=max(ids) if ids else None)


class MockEntityDirectory:
    """Mock 엔티티 디렉토리"""

    def __init__(self) -> None:
        self.records: dict[EntityRef, EntityRecord] = {}

    async def register(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity | str,
        name: str | None = None,
    ) -> EntityRecord:
        requested = EntityPolarity(polarity)
        existing = self.records.get(entity_ref)
        if existing is None:
            existing = EntityRecord(entity_ref=entity_ref, polarity=requested, name=name)
            self.records[entity_ref] = existing
        if existing.polarity != requested:
            raise PolarityConflictError(entity_ref, existing.polarity.value, requested.value)
        return existing

    async def get(self, entity_ref: EntityRef) -> EntityRecord | None:
        return self.records.get(entity_ref)

    async def get_polarity(self, entity_ref: EntityRef) -> EntityPolarity:
        record = self.records.get(entity_ref)
        if record is None:
            raise PolarityUndeterminedError(entity_ref)
        return record.polarity

    async def list_entities(self, kind: EntityKind | str | None = None) -> list[EntityRecord]:
        records = sorted(self.records.values(), key=lambda r: r.entity_ref.key)
        if kind is None:
            return records
        return [r for r in records if r.entity_ref.kind == EntityKind(kind).value]

    async def list_stock_entities(self, store_id: str) -> list[EntityRef]:
        refs = [
            ref for ref in self.records
            if ref.is_stock and ref.store_id == store_id
        ]
        return sorted(refs, key=lambda r: r.product_id)


class MockStockTakeStore:
    """Mock 재고 실사 세션 저장소

    전기 시 조정 Movement는 연결된 MockMovementStore에 기록.
    """

    def __init__(self, movement_store: MockMovementStore):
        self.movement_store = movement_store
        self.sessions: dict[str, StockTakeSession] = {}

    def _stored(self, session_id: str) -> StockTakeSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _ensure_draft(self, session: StockTakeSession) -> None:
        if session.status == StockTakeStatus.POSTED.value:
            raise AlreadyPostedError(session.session_id)
        if session.status == StockTakeStatus.DISCARDED.value:
            raise SessionDiscardedError(session.session_id)

    async def create(self, session: StockTakeSession) -> None:
        self.sessions[session.session_id] = copy.deepcopy(session)

    async def get(self, session_id: str) -> StockTakeSession:
        return copy.deepcopy(self._stored(session_id))

    async def list_sessions(
        self,
        store_id: str | None = None,
        status: StockTakeStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        result = []
        for session in sorted(self.sessions.values(), key=lambda s: s.started_at, reverse=True):
            if store_id is not None and session.store_id != store_id:
                continue
            if status is not None and session.status != StockTakeStatus(status).value:
                continue
            data = session.to_dict()
            data.pop("lines")
            data.pop("summary")
            result.append(data)
        return result

    async def update_count(
        self,
        session_id: str,
        product_id: str,
        counted: Decimal | None,
    ) -> None:
        session = self._stored(session_id)
        self._ensure_draft(session)
        for line in session.lines:
            if line.product_id == product_id:
                line.counted_quantity = counted
                return
        raise LineNotFoundError(session_id, product_id)

    async def discard(self, session_id: str, at: datetime | None = None) -> None:
        session = self._stored(session_id)
        self._ensure_draft(session)
        session.status = StockTakeStatus.DISCARDED.value
        session.discarded_at = at or utc_now()

    async def post(
        self,
        session_id: str,
        adjustments: Sequence[Movement],
        at: datetime | None = None,
    ) -> list[Movement]:
        session = self._stored(session_id)
        self._ensure_draft(session)

        # 저장 실패 시 상태 전이도 없음
        stored = await self.movement_store.append_many(adjustments)
        session.status = StockTakeStatus.POSTED.value
        session.posted_at = at or utc_now()
        return stored
