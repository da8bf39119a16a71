"""
Movement / Balance 정의

Movement는 불변, append-only 기록.
금액은 반드시 Decimal (float 금지 - 긴 replay 체인에서 오차 누적 방지).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from core.constants import ZERO
from core.ledger.errors import InvalidMovementError
from core.types import EntityPolarity, EntityRef, MovementKind


def to_amount(value: Any, name: str = "amount") -> Decimal:
    """금액을 Decimal로 변환

    Decimal, int, 숫자 문자열만 허용. float는 거부.

    Raises:
        InvalidMovementError: float 또는 숫자가 아닌 값
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidMovementError(
            f"{name} must be Decimal, int or a numeric string, got {type(value).__name__}",
            field=name,
        )
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as e:
            raise InvalidMovementError(f"{name} is not numeric: {value!r}", field=name) from e
    else:
        raise InvalidMovementError(
            f"{name} must be Decimal, int or a numeric string, got {type(value).__name__}",
            field=name,
        )

    if not result.is_finite():
        raise InvalidMovementError(f"{name} must be finite: {value!r}", field=name)
    return result


@dataclass(frozen=True)
class Movement:
    """수량 변동 기록 (불변)

    in_amount, out_amount 중 하나만 0이 아닐 수 있음.
    둘 다 0이면 체크포인트 (replay 시 no-op, trace에는 남음).

    id는 단조 증가하는 시퀀스 키. 저장 전에는 None이거나
    Reconciliation Engine이 부여한 임시 키일 수 있으며,
    MovementStore.append 시 저장소의 단조 id로 재부여됨.
    """

    entity_ref: EntityRef
    in_amount: Decimal
    out_amount: Decimal
    kind: str
    id: int | None = None
    reference: str | None = None
    memo: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        in_amount = to_amount(self.in_amount, "in_amount")
        out_amount = to_amount(self.out_amount, "out_amount")
        # frozen dataclass - 정규화된 값으로 교체
        object.__setattr__(self, "in_amount", in_amount)
        object.__setattr__(self, "out_amount", out_amount)

        if in_amount < ZERO or out_amount < ZERO:
            raise InvalidMovementError(
                "Movement amounts must be non-negative",
                in_amount=in_amount,
                out_amount=out_amount,
            )
        if in_amount != ZERO and out_amount != ZERO:
            raise InvalidMovementError(
                "A movement is either an increase or a decrease, never both",
                in_amount=in_amount,
                out_amount=out_amount,
            )
        if isinstance(self.kind, MovementKind):
            object.__setattr__(self, "kind", self.kind.value)

    @classmethod
    def incoming(
        cls,
        entity_ref: EntityRef,
        amount: Decimal | int | str,
        kind: str | MovementKind,
        **kwargs: Any,
    ) -> "Movement":
        """in 방향 Movement 생성"""
        return cls(entity_ref=entity_ref, in_amount=amount, out_amount=ZERO, kind=kind, **kwargs)

    @classmethod
    def outgoing(
        cls,
        entity_ref: EntityRef,
        amount: Decimal | int | str,
        kind: str | MovementKind,
        **kwargs: Any,
    ) -> "Movement":
        """out 방향 Movement 생성"""
        return cls(entity_ref=entity_ref, in_amount=ZERO, out_amount=amount, kind=kind, **kwargs)

    @property
    def is_checkpoint(self) -> bool:
        return self.in_amount == ZERO and self.out_amount == ZERO

    def signed_delta(self, polarity: EntityPolarity) -> Decimal:
        """부호 규칙에 따른 잔액 변화량"""
        if polarity == EntityPolarity.NORMAL_DEBIT:
            return self.in_amount - self.out_amount
        return self.out_amount - self.in_amount

    def with_id(self, movement_id: int) -> "Movement":
        """id가 부여된 사본 반환"""
        return replace(self, id=movement_id)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환"""
        return {
            "id": self.id,
            "entity_ref": self.entity_ref.key,
            "in_amount": str(self.in_amount),
            "out_amount": str(self.out_amount),
            "kind": self.kind,
            "reference": self.reference,
            "memo": self.memo,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Balance:
    """잔액 (불변)

    언제든 replay로 재계산 가능. 저장된 사본은 캐시일 뿐.

    Attributes:
        entity_ref: 엔티티
        as_of: 포함된 마지막 Movement id (Movement 없으면 None)
        value: 잔액
    """

    entity_ref: EntityRef
    as_of: int | None
    value: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_ref": self.entity_ref.key,
            "as_of": self.as_of,
            "value": str(self.value),
        }


@dataclass(frozen=True)
class MovementStats:
    """엔티티별 Movement 통계 (캐시 무효화 판단용 지문)

    Attributes:
        count: Movement 수
        max_id: 마지막 Movement id (없으면 None)
    """

    count: int
    max_id: int | None
