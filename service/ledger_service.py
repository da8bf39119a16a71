"""
Ledger Service

원장 조회/기록/재고 실사 오케스트레이션.

역할:
- 저장소 조회 → 부호 규칙 확인 → replay (잔액/원장 내역)
- Reconciliation Engine 결과를 원자적으로 저장 (수량 수정, 재고 실사 전기)
- 엔티티별 잠금, 재시도 정책, 잔액 캐시 관리

순수 컴포넌트(replayer, reconciliation)는 I/O와 재시도를 하지 않으며,
재시도는 이 계층에서만 수행.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IEntityDirectory, IMovementStore, IStockTakeStore
from core.config.loader import Settings, get_settings
from core.constants import ZERO
from core.ledger.directory import EntityDirectory, EntityRecord
from core.ledger.errors import InsufficientStockError, InvalidMovementError
from core.ledger.movement import Balance, Movement, MovementStats, to_amount
from core.ledger.reconciliation import Reconciliation, reconcile_balance, reconcile_session
from core.ledger.replayer import ReplayStep, replay
from core.ledger.stock_take import StockTakeLine, StockTakeSession, StockTakeSummary
from core.ledger.store import MovementStore
from core.storage.stock_take_store import StockTakeStore
from core.types import EntityKind, EntityPolarity, EntityRef, MovementKind, StockTakeStatus
from core.utils.timezone import utc_now
from service.balance_cache import BalanceCache
from service.locks import EntityLocks, KeyedLocks
from service.retry import RetryPolicy, run_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =========================================================================
# 결과 타입
# =========================================================================


@dataclass(frozen=True)
class LedgerStatement:
    """원장 내역 (기초 잔액 + 단계별 잔액 + 기말 잔액)

    기초 잔액은 from_id 이전 전체 구간을 replay하여 계산.
    lines는 id 오름차순 (표시용 역순은 newest_first()).
    """

    entity_ref: EntityRef
    polarity: EntityPolarity
    opening_balance: Decimal
    lines: tuple[ReplayStep, ...]
    closing_balance: Decimal
    from_id: int | None = None
    to_id: int | None = None

    def newest_first(self) -> list[ReplayStep]:
        """최신순 표시용 목록 (replay 순서는 바꾸지 않음)"""
        return list(reversed(self.lines))

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_ref": self.entity_ref.key,
            "polarity": self.polarity.value,
            "from_id": self.from_id,
            "to_id": self.to_id,
            "opening_balance": str(self.opening_balance),
            "closing_balance": str(self.closing_balance),
            "lines": [
                {
                    **step.movement.to_dict(),
                    "delta": str(step.delta),
                    "balance": str(step.balance),
                }
                for step in self.lines
            ],
        }


@dataclass(frozen=True)
class TransferResult:
    """매장 간 이동 결과"""

    from_store: str
    to_store: str
    reference: str
    movements: tuple[Movement, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_store": self.from_store,
            "to_store": self.to_store,
            "reference": self.reference,
            "movements": [m.to_dict() for m in self.movements],
        }


@dataclass(frozen=True)
class StockTakePostResult:
    """재고 실사 전기 결과"""

    session: StockTakeSession
    adjustments: tuple[Movement, ...]
    reconciliations: tuple[Reconciliation, ...]
    summary: StockTakeSummary

    @property
    def variances(self) -> dict[str, Decimal]:
        """상품별 차이 (실사 - 시스템)"""
        return {
            r.entity_ref.product_id: r.variance
            for r in self.reconciliations
            if r.entity_ref.product_id is not None
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session.to_dict(),
            "adjustments": [m.to_dict() for m in self.adjustments],
            "variances": {k: str(v) for k, v in self.variances.items()},
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class StoreInventory:
    """매장 재고 현황 (상품별 잔액)"""

    store_id: str
    as_of: int | None
    balances: tuple[Balance, ...]

    @property
    def total_quantity(self) -> Decimal:
        return sum((b.value for b in self.balances), ZERO)

    def quantities(self) -> dict[str, Decimal]:
        return {b.entity_ref.product_id: b.value for b in self.balances}

    def to_dict(self) -> dict[str, Any]:
        return {
            "store_id": self.store_id,
            "as_of": self.as_of,
            "total_quantity": str(self.total_quantity),
            "items": [
                {
                    "product_id": b.entity_ref.product_id,
                    "quantity": str(b.value),
                    "last_movement_id": b.as_of,
                }
                for b in self.balances
            ],
        }


@dataclass(frozen=True)
class InventoryTotals:
    """전 매장 상품별 재고 합계

    Attributes:
        as_of: 조회 기준 id (None이면 최신)
        by_product: 상품 id -> 매장 id -> 수량
    """

    as_of: int | None
    by_product: dict[str, dict[str, Decimal]]

    def product_total(self, product_id: str) -> Decimal:
        return sum(self.by_product.get(product_id, {}).values(), ZERO)

    @property
    def total_quantity(self) -> Decimal:
        return sum((self.product_total(p) for p in self.by_product), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of,
            "total_quantity": str(self.total_quantity),
            "products": [
                {
                    "product_id": product_id,
                    "total": str(self.product_total(product_id)),
                    "stores": {s: str(q) for s, q in stores.items()},
                }
                for product_id, stores in self.by_product.items()
            ],
        }


# =========================================================================
# LedgerService
# =========================================================================


class LedgerService:
    """원장 서비스

    Args:
        movements: Movement 저장소
        directory: 엔티티 디렉토리
        stock_takes: 재고 실사 세션 저장소
        cache: 잔액 캐시 (None이면 캐시 없이 매번 replay)
        retry: 재시도 정책
        locks: 엔티티별 잠금 레지스트리

    사용 예시:
    ```python
    service = LedgerService.from_db(db)

    ref = EntityRef.stock("P-01", "S-01")
    await service.register_entity(ref, EntityPolarity.NORMAL_DEBIT)
    await service.record_movement(Movement.incoming(ref, "200", MovementKind.RECEIPT))

    session = await service.open_stock_take("S-01")
    await service.record_count(session.session_id, "P-01", "185")
    result = await service.post_stock_take(session.session_id)
    ```
    """

    def __init__(
        self,
        movements: IMovementStore,
        directory: IEntityDirectory,
        stock_takes: IStockTakeStore,
        cache: BalanceCache | None = None,
        retry: RetryPolicy | None = None,
        locks: EntityLocks | None = None,
    ):
        self.movements = movements
        self.directory = directory
        self.stock_takes = stock_takes
        self.cache = cache
        self.retry = retry or RetryPolicy()
        self.locks = locks or EntityLocks()
        self.session_locks = KeyedLocks()

    @classmethod
    def from_db(cls, db: SQLiteAdapter, settings: Settings | None = None) -> "LedgerService":
        """SQLite 저장소로 서비스 생성

        Args:
            db: 연결된 SQLiteAdapter
            settings: Settings (None이면 get_settings())
        """
        settings = settings or get_settings()
        cache = None
        if settings.cache.enabled:
            cache = BalanceCache(max_entries=settings.cache.max_entries)

        return cls(
            movements=MovementStore(db),
            directory=EntityDirectory(db),
            stock_takes=StockTakeStore(db),
            cache=cache,
            retry=RetryPolicy.from_config(settings.retry),
        )

    async def _retry(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        retry_conflicts: bool = True,
    ) -> T:
        return await run_with_retry(
            operation, self.retry, name=name, retry_conflicts=retry_conflicts
        )

    def _invalidate(self, *entity_refs: EntityRef) -> None:
        if self.cache is None:
            return
        for ref in entity_refs:
            self.cache.invalidate(ref)

    # -------------------------------------------------------------------------
    # 엔티티
    # -------------------------------------------------------------------------

    async def register_entity(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity | str,
        name: str | None = None,
    ) -> EntityRecord:
        """엔티티 등록 (멱등)

        Raises:
            PolarityConflictError: 다른 부호 규칙으로 재등록
        """
        record = await self._retry(
            lambda: self.directory.register(entity_ref, polarity, name),
            "register_entity",
        )
        logger.info(
            "엔티티 등록",
            extra={"entity_ref": entity_ref.key, "polarity": record.polarity.value},
        )
        return record

    async def list_entities(self, kind: EntityKind | str | None = None) -> list[EntityRecord]:
        """엔티티 목록"""
        return await self._retry(lambda: self.directory.list_entities(kind), "list_entities")

    # -------------------------------------------------------------------------
    # 잔액 / 원장 내역
    # -------------------------------------------------------------------------

    async def get_balance(self, entity_ref: EntityRef, as_of: int | None = None) -> Balance:
        """잔액 조회

        Args:
            entity_ref: 엔티티
            as_of: 이 id 이하 Movement까지 반영 (None이면 최신)

        Returns:
            Balance (as_of는 실제 반영된 마지막 Movement id)

        Raises:
            PolarityUndeterminedError: 미등록 엔티티
        """
        return await self._retry(
            lambda: self._load_balance(entity_ref, as_of), "get_balance"
        )

    async def _load_balance(self, entity_ref: EntityRef, as_of: int | None) -> Balance:
        polarity = await self.directory.get_polarity(entity_ref)
        stats = await self.movements.stats(entity_ref)
        if as_of is None:
            return await self._latest_balance(entity_ref, polarity, stats)
        return await self._balance_at(entity_ref, polarity, stats, as_of)

    async def _latest_balance(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity,
        stats: MovementStats,
    ) -> Balance:
        cached = self.cache.get_latest(entity_ref) if self.cache is not None else None

        if cached is not None and cached.fingerprint is not None:
            fingerprint = cached.fingerprint
            if fingerprint == stats:
                return cached.balance

            if stats.count > fingerprint.count:
                # 뒤에 추가된 Movement만 replay (분할 replay 성질)
                from_id = fingerprint.max_id + 1 if fingerprint.max_id is not None else None
                tail = await self.movements.query(entity_ref, from_id=from_id)
                if tail and fingerprint.count + len(tail) >= stats.count:
                    result = replay(tail, polarity, cached.balance.value)
                    balance = Balance(entity_ref, result.last_movement_id, result.final_balance)
                    self.cache.put_latest(
                        balance,
                        MovementStats(fingerprint.count + len(tail), result.last_movement_id),
                    )
                    return balance

        movements = await self.movements.query(entity_ref)
        result = replay(movements, polarity)
        balance = Balance(entity_ref, result.last_movement_id, result.final_balance)
        if self.cache is not None:
            self.cache.put_latest(
                balance, MovementStats(len(movements), result.last_movement_id)
            )
        return balance

    async def _balance_at(
        self,
        entity_ref: EntityRef,
        polarity: EntityPolarity,
        stats: MovementStats,
        as_of: int,
    ) -> Balance:
        # 엔티티 마지막 id 이하 시점은 이후 append로 바뀌지 않음 (id 전역 단조 증가)
        cacheable = (
            self.cache is not None and stats.max_id is not None and as_of <= stats.max_id
        )
        if cacheable:
            cached = self.cache.get_at(entity_ref, as_of)
            if cached is not None:
                return cached

        movements = await self.movements.query(entity_ref, to_id=as_of)
        result = replay(movements, polarity)
        balance = Balance(entity_ref, result.last_movement_id, result.final_balance)
        if cacheable:
            self.cache.put_at(entity_ref, as_of, balance)
        return balance

    async def get_statement(
        self,
        entity_ref: EntityRef,
        from_id: int | None = None,
        to_id: int | None = None,
    ) -> LedgerStatement:
        """원장 내역 조회

        기초 잔액은 from_id 이전 전체 구간 replay로 계산
        (조회 구간 합계로 역산하지 않음).

        Args:
            entity_ref: 엔티티
            from_id: 시작 id (포함, None이면 처음부터)
            to_id: 끝 id (포함, None이면 마지막까지)
        """

        async def load() -> LedgerStatement:
            polarity = await self.directory.get_polarity(entity_ref)
            opening = ZERO
            if from_id is not None:
                stats = await self.movements.stats(entity_ref)
                prior = await self._balance_at(entity_ref, polarity, stats, from_id - 1)
                opening = prior.value

            page = await self.movements.query(entity_ref, from_id=from_id, to_id=to_id)
            result = replay(page, polarity, opening)
            return LedgerStatement(
                entity_ref=entity_ref,
                polarity=polarity,
                opening_balance=opening,
                lines=result.steps,
                closing_balance=result.final_balance,
                from_id=from_id,
                to_id=to_id,
            )

        return await self._retry(load, "get_statement")

    async def get_store_inventory(
        self, store_id: str, as_of: int | None = None
    ) -> StoreInventory:
        """매장 재고 현황

        매장에 등록된 재고 엔티티마다 replay 잔액 (상품 id 순).

        Args:
            store_id: 매장 id
            as_of: 이 id 이하 Movement까지 반영 (None이면 최신)
        """
        refs = await self._retry(
            lambda: self.directory.list_stock_entities(str(store_id)),
            "list_stock_entities",
        )
        balances = [await self.get_balance(ref, as_of) for ref in refs]
        return StoreInventory(str(store_id), as_of, tuple(balances))

    async def get_inventory_totals(self, as_of: int | None = None) -> InventoryTotals:
        """전 매장 상품별 재고 합계"""
        records = await self.list_entities(EntityKind.STOCK)
        by_product: dict[str, dict[str, Decimal]] = {}
        for record in sorted(
            records, key=lambda r: (r.entity_ref.product_id, r.entity_ref.store_id)
        ):
            ref = record.entity_ref
            balance = await self.get_balance(ref, as_of)
            by_product.setdefault(ref.product_id, {})[ref.store_id] = balance.value
        return InventoryTotals(as_of, by_product)

    async def find_movements(self, reference: str) -> list[Movement]:
        """참조값으로 Movement 조회 (이동, 실사 전기 추적용)"""
        return await self._retry(
            lambda: self.movements.query_by_reference(reference), "find_movements"
        )

    # -------------------------------------------------------------------------
    # 기록
    # -------------------------------------------------------------------------

    async def record_movement(
        self,
        movement: Movement,
        expected_last_id: int | None = None,
    ) -> Movement:
        """Movement 기록

        expected_last_id를 지정한 경우 충돌은 재시도하지 않고 호출자에게 전파
        (호출자가 본 잔액이 이미 바뀐 것이므로).

        Raises:
            PolarityUndeterminedError: 미등록 엔티티
            ConcurrentAppendConflict: expected_last_id 불일치
        """
        ref = movement.entity_ref

        async def append() -> Movement:
            await self.directory.get_polarity(ref)
            async with self.locks.hold(ref):
                try:
                    return await self.movements.append(movement, expected_last_id)
                finally:
                    self._invalidate(ref)

        stored = await self._retry(append, "record_movement", retry_conflicts=False)
        logger.info(
            "Movement 기록",
            extra={
                "movement_id": stored.id,
                "entity_ref": ref.key,
                "kind": stored.kind,
            },
        )
        return stored

    async def record_transfer(
        self,
        from_store: str,
        to_store: str,
        items: Mapping[str, Decimal | int | str] | Iterable[tuple[str, Decimal | int | str]],
        reference: str | None = None,
        memo: str | None = None,
    ) -> TransferResult:
        """매장 간 재고 이동

        상품마다 출고 매장 TRANSFER_OUT + 입고 매장 TRANSFER_IN.
        전체 Movement를 하나의 트랜잭션으로 기록 (전부 또는 전무).
        재고 확인을 통과하면 입고 매장 재고 엔티티를 (없을 때) NORMAL_DEBIT으로 등록.

        Args:
            from_store: 출고 매장
            to_store: 입고 매장
            items: {product_id: quantity} 또는 (product_id, quantity) 목록

        Raises:
            InvalidMovementError: 같은 매장, 빈 목록, 0 이하 수량, 중복 상품
            PolarityUndeterminedError: 출고 매장에 등록되지 않은 상품
            InsufficientStockError: 출고 매장 재고 부족 (상품별 부족분 포함)
        """
        if str(from_store) == str(to_store):
            raise InvalidMovementError(
                "Source and destination stores must differ", store_id=from_store
            )

        pairs = list(items.items()) if isinstance(items, Mapping) else list(items)
        if not pairs:
            raise InvalidMovementError("Transfer has no items")

        quantities: dict[str, Decimal] = {}
        for product_id, quantity in pairs:
            amount = to_amount(quantity, "quantity")
            if amount <= ZERO:
                raise InvalidMovementError(
                    "Transfer quantity must be positive",
                    product_id=product_id,
                    quantity=amount,
                )
            if str(product_id) in quantities:
                raise InvalidMovementError(
                    f"Product {product_id} appears more than once", product_id=product_id
                )
            quantities[str(product_id)] = amount

        reference = reference or f"transfer:{uuid.uuid4()}"
        sources = {p: EntityRef.stock(p, from_store) for p in quantities}
        destinations = {p: EntityRef.stock(p, to_store) for p in quantities}

        async def transfer() -> list[Movement]:
            async with self.locks.hold(*sources.values(), *destinations.values()):
                shortages: list[dict[str, Any]] = []
                for product_id, ref in sources.items():
                    available = (await self._load_balance(ref, None)).value
                    requested = quantities[product_id]
                    if available < requested:
                        shortages.append({
                            "product_id": product_id,
                            "requested": requested,
                            "available": available,
                            "shortfall": requested - available,
                        })
                if shortages:
                    raise InsufficientStockError(str(from_store), shortages)

                # 재고 확인 통과 후에만 입고 매장 엔티티 등록
                for ref in destinations.values():
                    await self.directory.register(ref, EntityPolarity.NORMAL_DEBIT)

                movements: list[Movement] = []
                for product_id, quantity in quantities.items():
                    movements.append(Movement.outgoing(
                        sources[product_id], quantity, MovementKind.TRANSFER_OUT,
                        reference=reference, memo=memo,
                    ))
                    movements.append(Movement.incoming(
                        destinations[product_id], quantity, MovementKind.TRANSFER_IN,
                        reference=reference, memo=memo,
                    ))
                try:
                    return await self.movements.append_many(movements)
                finally:
                    self._invalidate(*sources.values(), *destinations.values())

        stored = await self._retry(transfer, "record_transfer")
        logger.info(
            "재고 이동 기록",
            extra={
                "from_store": from_store,
                "to_store": to_store,
                "reference": reference,
                "item_count": len(quantities),
            },
        )
        return TransferResult(
            from_store=str(from_store),
            to_store=str(to_store),
            reference=reference,
            movements=tuple(stored),
        )

    async def adjust_to(
        self,
        entity_ref: EntityRef,
        counted: Decimal | int | str,
        kind: str | MovementKind = MovementKind.COUNTER_ADJUSTMENT,
        reference: str | None = None,
        memo: str | None = None,
    ) -> Reconciliation:
        """라이브 잔액을 관측값에 맞추는 조정 Movement 기록

        expected_last_id 검사로 append하며, 충돌 시 잔액을 재조회하여 재시도.
        차이가 없으면 아무것도 기록하지 않음.

        Returns:
            Reconciliation (adjustment는 저장된 Movement 또는 None)
        """

        async def attempt() -> Reconciliation:
            async with self.locks.hold(entity_ref):
                polarity = await self.directory.get_polarity(entity_ref)
                stats = await self.movements.stats(entity_ref)
                balance = await self._latest_balance(entity_ref, polarity, stats)
                rec = reconcile_balance(
                    balance,
                    counted,
                    polarity=polarity,
                    kind=kind,
                    reference=reference,
                    memo=memo,
                )
                if rec.adjustment is None:
                    return rec

                try:
                    stored = await self.movements.append(
                        rec.adjustment, expected_last_id=balance.as_of or 0
                    )
                finally:
                    self._invalidate(entity_ref)
                return replace(rec, adjustment=stored)

        rec = await self._retry(attempt, "adjust_to")
        if rec.adjustment is not None:
            logger.info(
                "조정 Movement 기록",
                extra={
                    "entity_ref": entity_ref.key,
                    "variance": str(rec.variance),
                    "movement_id": rec.adjustment.id,
                },
            )
        return rec

    async def set_quantity(
        self,
        product_id: str,
        store_id: str,
        new_quantity: Decimal | int | str,
        memo: str | None = None,
    ) -> Reconciliation:
        """재고 수량 직접 수정 (QUANTITY_UPDATE 조정)

        Raises:
            InvalidMovementError: 음수 수량
        """
        quantity = to_amount(new_quantity, "new_quantity")
        if quantity < ZERO:
            raise InvalidMovementError(
                "Stock quantity must be non-negative",
                product_id=product_id,
                new_quantity=quantity,
            )
        return await self.adjust_to(
            EntityRef.stock(product_id, store_id),
            quantity,
            kind=MovementKind.QUANTITY_UPDATE,
            reference=f"quantity-update:{store_id}",
            memo=memo,
        )

    async def reconcile(
        self,
        entity_ref: EntityRef,
        counted: Decimal | int | str,
        kind: str | MovementKind | None = None,
    ) -> Reconciliation:
        """라이브 잔액 기준 정합 미리보기 (기록하지 않음)"""
        if kind is None:
            kind = MovementKind.QUANTITY_UPDATE if entity_ref.is_stock else MovementKind.JOURNAL

        async def preview() -> Reconciliation:
            polarity = await self.directory.get_polarity(entity_ref)
            stats = await self.movements.stats(entity_ref)
            balance = await self._latest_balance(entity_ref, polarity, stats)
            return reconcile_balance(balance, counted, polarity=polarity, kind=kind)

        return await self._retry(preview, "reconcile")

    # -------------------------------------------------------------------------
    # 재고 실사
    # -------------------------------------------------------------------------

    async def open_stock_take(
        self,
        store_id: str,
        product_ids: Iterable[str] | None = None,
    ) -> StockTakeSession:
        """재고 실사 세션 개시

        개시 시점 잔액을 스냅샷으로 고정.
        product_ids가 없으면 매장에 등록된 모든 재고 엔티티.
        """
        if product_ids is None:
            refs = await self._retry(
                lambda: self.directory.list_stock_entities(str(store_id)),
                "list_stock_entities",
            )
        else:
            refs = [EntityRef.stock(p, store_id) for p in dict.fromkeys(map(str, product_ids))]

        snapshots = [await self.get_balance(ref) for ref in refs]
        session = StockTakeSession.open(str(store_id), snapshots)
        await self._retry(lambda: self.stock_takes.create(session), "open_stock_take")

        logger.info(
            "재고 실사 개시",
            extra={
                "session_id": session.session_id,
                "store_id": session.store_id,
                "line_count": len(session.lines),
            },
        )
        return session

    async def get_stock_take(self, session_id: str) -> StockTakeSession:
        """재고 실사 세션 조회

        Raises:
            SessionNotFoundError: 세션 없음
        """
        return await self._retry(lambda: self.stock_takes.get(session_id), "get_stock_take")

    async def list_stock_takes(
        self,
        store_id: str | None = None,
        status: StockTakeStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        """재고 실사 세션 목록"""
        return await self._retry(
            lambda: self.stock_takes.list_sessions(store_id, status), "list_stock_takes"
        )

    async def record_count(
        self,
        session_id: str,
        product_id: str,
        counted: Decimal | int | str,
    ) -> StockTakeLine:
        """실사 수량 입력 (DRAFT만)

        Raises:
            AlreadyPostedError, SessionDiscardedError: DRAFT 아님
            LineNotFoundError: 세션에 없는 상품
            InvalidMovementError: 음수 수량
        """
        async with self.session_locks.hold(session_id):
            session = await self.get_stock_take(session_id)
            line = session.record_count(product_id, counted)
            await self._retry(
                lambda: self.stock_takes.update_count(
                    session_id, line.product_id, line.counted_quantity
                ),
                "record_count",
            )
        return line

    async def discard_stock_take(self, session_id: str) -> StockTakeSession:
        """재고 실사 폐기 (Movement 없음)"""
        async with self.session_locks.hold(session_id):
            session = await self.get_stock_take(session_id)
            session.mark_discarded()
            await self._retry(
                lambda: self.stock_takes.discard(session_id, session.discarded_at),
                "discard_stock_take",
            )
        logger.info("재고 실사 폐기", extra={"session_id": session_id})
        return session

    async def post_stock_take(self, session: StockTakeSession | str) -> StockTakePostResult:
        """재고 실사 전기

        저장된 세션을 다시 읽어 개시 시점 스냅샷과 비교하고,
        조정 Movement 기록과 POSTED 전이를 하나의 트랜잭션으로 수행.
        차이가 없는 항목은 조정 Movement를 만들지 않음.

        Args:
            session: 세션 또는 세션 ID (실사 수량은 저장된 값 사용)

        Raises:
            AlreadyPostedError: 이미 전기됨 (아무것도 기록하지 않음)
            SessionDiscardedError: 폐기됨
            SessionNotFoundError: 세션 없음
        """
        session_id = session if isinstance(session, str) else session.session_id

        # 세션 잠금: 읽은 실사 수량이 전기 시점까지 바뀌지 않음 (record_count 대기)
        async with self.session_locks.hold(session_id):
            stored_session = await self.get_stock_take(session_id)
            stored_session.ensure_editable()

            refs = [stored_session.entity_ref(line) for line in stored_session.lines]
            polarities: dict[EntityRef, EntityPolarity] = {}
            for ref in refs:
                polarities[ref] = await self._retry(
                    lambda ref=ref: self.directory.get_polarity(ref), "get_polarity"
                )

            reconciliations = reconcile_session(stored_session, polarities)
            adjustments = [r.adjustment for r in reconciliations if r.adjustment is not None]
            posted_at = utc_now()

            async def post() -> list[Movement]:
                async with self.locks.hold(*refs):
                    try:
                        return await self.stock_takes.post(session_id, adjustments, posted_at)
                    finally:
                        self._invalidate(*refs)

            stored = await self._retry(post, "post_stock_take", retry_conflicts=False)
            stored_session.mark_posted(posted_at)

        by_ref = {m.entity_ref: m for m in stored}
        reconciliations = [
            replace(r, adjustment=by_ref.get(r.entity_ref)) if r.adjustment is not None else r
            for r in reconciliations
        ]

        summary = stored_session.summary()
        logger.info(
            "재고 실사 전기",
            extra={
                "session_id": session_id,
                "adjustment_count": len(stored),
                "net_variance": str(summary.net_variance),
            },
        )
        return StockTakePostResult(
            session=stored_session,
            adjustments=tuple(stored),
            reconciliations=tuple(reconciliations),
            summary=summary,
        )
