"""
재고 실사 세션 모델

세션 개시 시점의 시스템 수량 스냅샷(system_quantity)을 고정하고,
실사 수량(counted_quantity)은 전기 전까지 수정 가능.
전기(POSTED) 또는 폐기(DISCARDED) 후에는 변경 불가.

실사 중 판매/입고가 계속 발생해도 스냅샷과 비교함
(실사 수량은 특정 시점의 재고를 반영하므로 라이브 잔액으로 재조회하지 않음).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from core.constants import ZERO
from core.domain.state_machines import StockTakeStateMachine
from core.ledger.errors import (
    AlreadyPostedError,
    InvalidMovementError,
    LineNotFoundError,
    SessionDiscardedError,
)
from core.ledger.movement import Balance, to_amount
from core.types import EntityRef, StockTakeStatus
from core.utils.timezone import utc_now


@dataclass
class StockTakeLine:
    """실사 항목 (상품 1건)

    counted_quantity가 None이면 미실사 → 시스템 수량과 동일하게 취급.
    """

    product_id: str
    system_quantity: Decimal
    snapshot_as_of: int | None
    counted_quantity: Decimal | None = None

    @property
    def is_counted(self) -> bool:
        return self.counted_quantity is not None

    @property
    def effective_counted(self) -> Decimal:
        """비교에 사용할 실사 수량"""
        if self.counted_quantity is None:
            return self.system_quantity
        return self.counted_quantity

    @property
    def variance(self) -> Decimal:
        return self.effective_counted - self.system_quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "system_quantity": str(self.system_quantity),
            "snapshot_as_of": self.snapshot_as_of,
            "counted_quantity": (
                str(self.counted_quantity) if self.counted_quantity is not None else None
            ),
            "variance": str(self.variance),
        }


@dataclass(frozen=True)
class StockTakeSummary:
    """실사 요약 (보고서 합계용)"""

    total_items: int
    counted_items: int
    items_with_variance: int
    total_system_quantity: Decimal
    total_counted_quantity: Decimal
    positive_variance: Decimal  # 실사 > 시스템 (초과분 합계)
    negative_variance: Decimal  # 실사 < 시스템 (부족분 합계, 양수로 표시)

    @property
    def net_variance(self) -> Decimal:
        return self.positive_variance - self.negative_variance

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_items": self.total_items,
            "counted_items": self.counted_items,
            "items_with_variance": self.items_with_variance,
            "total_system_quantity": str(self.total_system_quantity),
            "total_counted_quantity": str(self.total_counted_quantity),
            "positive_variance": str(self.positive_variance),
            "negative_variance": str(self.negative_variance),
            "net_variance": str(self.net_variance),
        }


@dataclass
class StockTakeSession:
    """재고 실사 세션

    Args:
        session_id: 세션 ID (UUID)
        store_id: 매장 ID
        started_at: 개시 시각 (스냅샷 시점)
        lines: 상품별 실사 항목
        status: DRAFT | POSTED | DISCARDED
    """

    session_id: str
    store_id: str
    started_at: datetime
    lines: list[StockTakeLine] = field(default_factory=list)
    status: str = StockTakeStatus.DRAFT.value
    posted_at: datetime | None = None
    discarded_at: datetime | None = None

    @classmethod
    def open(cls, store_id: str, snapshots: Iterable[Balance]) -> "StockTakeSession":
        """스냅샷으로 새 DRAFT 세션 생성

        Args:
            store_id: 매장 ID
            snapshots: 개시 시점 재고 잔액 (해당 매장의 STOCK 엔티티)
        """
        lines: list[StockTakeLine] = []
        for balance in snapshots:
            ref = balance.entity_ref
            if not ref.is_stock or ref.store_id != str(store_id):
                raise InvalidMovementError(
                    f"{ref} is not a stock entity of store {store_id}",
                    entity_ref=ref,
                )
            lines.append(StockTakeLine(
                product_id=ref.product_id,
                system_quantity=balance.value,
                snapshot_as_of=balance.as_of,
            ))

        return cls(
            session_id=str(uuid.uuid4()),
            store_id=str(store_id),
            started_at=utc_now(),
            lines=lines,
        )

    @property
    def is_draft(self) -> bool:
        return self.status == StockTakeStatus.DRAFT.value

    def entity_ref(self, line: StockTakeLine) -> EntityRef:
        """항목의 재고 엔티티"""
        return EntityRef.stock(line.product_id, self.store_id)

    def line_for(self, product_id: str) -> StockTakeLine:
        """상품 항목 조회

        Raises:
            LineNotFoundError: 세션에 없는 상품
        """
        for line in self.lines:
            if line.product_id == str(product_id):
                return line
        raise LineNotFoundError(self.session_id, str(product_id))

    def ensure_editable(self) -> None:
        """DRAFT 상태 확인

        Raises:
            AlreadyPostedError: 이미 전기됨
            SessionDiscardedError: 폐기됨
        """
        if self.status == StockTakeStatus.POSTED.value:
            raise AlreadyPostedError(self.session_id)
        if self.status == StockTakeStatus.DISCARDED.value:
            raise SessionDiscardedError(self.session_id)

    def record_count(self, product_id: str, counted: Decimal | int | str) -> StockTakeLine:
        """실사 수량 입력

        Raises:
            AlreadyPostedError, SessionDiscardedError: DRAFT 아님
            LineNotFoundError: 세션에 없는 상품
            InvalidMovementError: 음수 또는 float 수량
        """
        self.ensure_editable()
        quantity = to_amount(counted, "counted_quantity")
        if quantity < ZERO:
            raise InvalidMovementError(
                "Counted quantity must be non-negative",
                product_id=product_id,
                counted_quantity=quantity,
            )
        line = self.line_for(product_id)
        line.counted_quantity = quantity
        return line

    def mark_posted(self, at: datetime | None = None) -> None:
        """POSTED로 전이"""
        self.ensure_editable()
        machine = StockTakeStateMachine(self.status)
        self.status = machine.transition(StockTakeStatus.POSTED)
        self.posted_at = at or utc_now()

    def mark_discarded(self, at: datetime | None = None) -> None:
        """DISCARDED로 전이"""
        self.ensure_editable()
        machine = StockTakeStateMachine(self.status)
        self.status = machine.transition(StockTakeStatus.DISCARDED)
        self.discarded_at = at or utc_now()

    def summary(self) -> StockTakeSummary:
        """실사 요약 계산"""
        positive = ZERO
        negative = ZERO
        with_variance = 0
        for line in self.lines:
            variance = line.variance
            if variance > ZERO:
                positive += variance
                with_variance += 1
            elif variance < ZERO:
                negative -= variance
                with_variance += 1

        return StockTakeSummary(
            total_items=len(self.lines),
            counted_items=sum(1 for line in self.lines if line.is_counted),
            items_with_variance=with_variance,
            total_system_quantity=sum((line.system_quantity for line in self.lines), ZERO),
            total_counted_quantity=sum((line.effective_counted for line in self.lines), ZERO),
            positive_variance=positive,
            negative_variance=negative,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "store_id": self.store_id,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
            "discarded_at": self.discarded_at.isoformat() if self.discarded_at else None,
            "lines": [line.to_dict() for line in self.lines],
            "summary": self.summary().to_dict(),
        }
