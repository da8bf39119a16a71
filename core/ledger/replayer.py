"""
Balance Replayer

정렬된 Movement 시퀀스 + 기초 잔액 → 단계별 잔액 + 최종 잔액.

규칙:
- 입력은 id 오름차순이어야 함. 위반 시 OrderingError (절대 재정렬하지 않음)
- 정렬은 호출자 책임이며 sort_for_replay()가 유일한 표준 정렬
- 순수 함수: I/O, 재시도, 숨은 상태 없음
- Decimal 연산만 사용

사용 예시:
```python
result = replay(movements, EntityPolarity.NORMAL_DEBIT)
result.running         # [Decimal("100"), Decimal("70"), Decimal("120")]
result.final_balance   # Decimal("120")
```
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from core.constants import ZERO
from core.ledger.errors import OrderingError, PolarityUndeterminedError
from core.ledger.movement import Movement, to_amount
from core.types import EntityPolarity


@dataclass(frozen=True)
class ReplayStep:
    """Replay 한 단계 (Movement 1건 반영 결과)"""

    movement: Movement
    delta: Decimal
    balance: Decimal

    @property
    def movement_id(self) -> int | None:
        return self.movement.id


@dataclass(frozen=True)
class ReplayResult:
    """Replay 결과"""

    polarity: EntityPolarity
    opening_balance: Decimal
    steps: tuple[ReplayStep, ...]
    final_balance: Decimal

    @property
    def running(self) -> list[Decimal]:
        """단계별 잔액 목록"""
        return [step.balance for step in self.steps]

    @property
    def last_movement_id(self) -> int | None:
        """포함된 마지막 Movement id (없으면 None)"""
        if not self.steps:
            return None
        return self.steps[-1].movement_id


def sort_for_replay(movements: Iterable[Movement]) -> list[Movement]:
    """표준 replay 순서 (id 오름차순)로 정렬

    Replay 전 호출자가 명시적으로 수행하는 단계.
    id가 없는 Movement는 순서를 정할 수 없으므로 OrderingError.
    """
    items = list(movements)
    for position, movement in enumerate(items):
        if movement.id is None:
            raise OrderingError(position, None, None)
    return sorted(items, key=lambda m: m.id)


def check_order(movements: Sequence[Movement]) -> None:
    """id 엄격 오름차순 검증

    Raises:
        OrderingError: id 누락, 중복, 역순
    """
    previous_id: int | None = None
    for position, movement in enumerate(movements):
        current_id = movement.id
        if current_id is None:
            raise OrderingError(position, previous_id, current_id)
        if previous_id is not None and current_id <= previous_id:
            raise OrderingError(position, previous_id, current_id)
        previous_id = current_id


def resolve_polarity(polarity: EntityPolarity | str | None) -> EntityPolarity:
    """부호 규칙 검증/정규화

    Raises:
        PolarityUndeterminedError: None 또는 알 수 없는 값
    """
    if isinstance(polarity, EntityPolarity):
        return polarity
    if isinstance(polarity, str):
        try:
            return EntityPolarity(polarity)
        except ValueError:
            pass
    raise PolarityUndeterminedError(polarity)


def replay(
    movements: Sequence[Movement],
    polarity: EntityPolarity | str | None,
    opening_balance: Decimal | int | str = ZERO,
) -> ReplayResult:
    """Movement 시퀀스 replay

    Args:
        movements: id 오름차순 Movement 목록
        polarity: 엔티티 부호 규칙
        opening_balance: 기초 잔액

    Returns:
        ReplayResult (단계별 잔액 + 최종 잔액)

    Raises:
        OrderingError: 정렬 위반
        PolarityUndeterminedError: 부호 규칙 미지정
    """
    resolved = resolve_polarity(polarity)
    opening = to_amount(opening_balance, "opening_balance")
    check_order(movements)

    running = opening
    steps: list[ReplayStep] = []
    for movement in movements:
        delta = movement.signed_delta(resolved)
        running += delta
        steps.append(ReplayStep(movement=movement, delta=delta, balance=running))

    return ReplayResult(
        polarity=resolved,
        opening_balance=opening,
        steps=tuple(steps),
        final_balance=running,
    )
