"""
Reconciliation Engine

시스템 잔액과 외부 관측값(실사 수량)을 비교하여 차이(variance)를 계산하고,
차이가 0이 아니면 이를 맞추는 조정 Movement를 생성.

순수 함수: I/O, 재시도 없음. 조정 Movement의 저장(원자적 append)은
LedgerService 책임.

시퀀스 규칙:
조정 Movement에는 임시 키 (after_id + 1)를 부여하여 스냅샷에 포함된
모든 Movement 뒤에 정렬되도록 함. 저장 시 MovementStore가 단조 id로
재부여하며, 이 역시 스냅샷의 마지막 id보다 큼.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from core.constants import ZERO
from core.ledger.errors import PolarityUndeterminedError
from core.ledger.movement import Balance, Movement, to_amount
from core.ledger.replayer import resolve_polarity
from core.ledger.stock_take import StockTakeSession
from core.types import EntityPolarity, EntityRef, MovementKind


@dataclass(frozen=True)
class Reconciliation:
    """정합 결과

    Attributes:
        entity_ref: 엔티티
        system_balance: 비교 기준 시스템 잔액 (스냅샷)
        counted: 관측값
        variance: counted - system_balance
        adjustment: 조정 Movement (variance == 0이면 None)
        after_id: 기준 잔액에 포함된 마지막 Movement id
    """

    entity_ref: EntityRef
    system_balance: Decimal
    counted: Decimal
    variance: Decimal
    adjustment: Movement | None
    after_id: int | None = None

    @property
    def has_variance(self) -> bool:
        return self.variance != ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_ref": self.entity_ref.key,
            "system_balance": str(self.system_balance),
            "counted": str(self.counted),
            "variance": str(self.variance),
            "after_id": self.after_id,
            "adjustment": self.adjustment.to_dict() if self.adjustment else None,
        }


def next_sequence_key(after_id: int | None) -> int:
    """스냅샷 마지막 id 다음의 임시 시퀀스 키"""
    return 1 if after_id is None else after_id + 1


def reconcile(
    system_balance: Decimal | int | str,
    counted: Decimal | int | str,
    entity_ref: EntityRef,
    *,
    after_id: int | None = None,
    polarity: EntityPolarity | str,
    kind: str | MovementKind = MovementKind.STOCK_TAKE,
    reference: str | None = None,
    memo: str | None = None,
) -> Reconciliation:
    """시스템 잔액 vs 관측값 정합

    Args:
        system_balance: 시스템 잔액
        counted: 관측값 (실사 수량, 거래처 확인 잔액 등)
        entity_ref: 엔티티
        after_id: system_balance 계산에 포함된 마지막 Movement id
        polarity: 엔티티 부호 규칙 (기본값 없음, 디렉토리에서 조회한 값)
        kind: 조정 Movement 유형
        reference: 조정 Movement 참조 (세션 ID 등)
        memo: 메모

    Returns:
        Reconciliation. variance == 0이면 adjustment는 None
    """
    resolved = resolve_polarity(polarity)
    system = to_amount(system_balance, "system_balance")
    observed = to_amount(counted, "counted")
    variance = observed - system

    if variance == ZERO:
        return Reconciliation(
            entity_ref=entity_ref,
            system_balance=system,
            counted=observed,
            variance=variance,
            adjustment=None,
            after_id=after_id,
        )

    # 잔액을 증가시키는 쪽: NORMAL_DEBIT → in, NORMAL_CREDIT → out
    increase = variance > ZERO
    if resolved == EntityPolarity.NORMAL_CREDIT:
        increase = not increase

    amount = abs(variance)
    adjustment = Movement(
        entity_ref=entity_ref,
        in_amount=amount if increase else ZERO,
        out_amount=ZERO if increase else amount,
        kind=kind,
        id=next_sequence_key(after_id),
        reference=reference,
        memo=memo,
    )

    return Reconciliation(
        entity_ref=entity_ref,
        system_balance=system,
        counted=observed,
        variance=variance,
        adjustment=adjustment,
        after_id=after_id,
    )


def reconcile_balance(
    balance: Balance,
    counted: Decimal | int | str,
    *,
    polarity: EntityPolarity | str,
    kind: str | MovementKind = MovementKind.STOCK_TAKE,
    reference: str | None = None,
    memo: str | None = None,
) -> Reconciliation:
    """Balance 기준 정합 (as_of를 after_id로 사용)"""
    return reconcile(
        balance.value,
        counted,
        balance.entity_ref,
        after_id=balance.as_of,
        polarity=polarity,
        kind=kind,
        reference=reference,
        memo=memo,
    )


def reconcile_session(
    session: StockTakeSession,
    polarities: Mapping[EntityRef, EntityPolarity],
) -> list[Reconciliation]:
    """재고 실사 세션 일괄 정합

    라이브 잔액이 아닌 세션 개시 시점 스냅샷과 비교.
    항목 순서대로 Reconciliation 1건씩 반환 (차이 없는 항목 포함).

    Args:
        session: DRAFT 세션
        polarities: 엔티티별 부호 규칙 (모든 항목의 엔티티 포함)

    Raises:
        AlreadyPostedError, SessionDiscardedError: DRAFT 아님
        PolarityUndeterminedError: 부호 규칙이 없는 항목
    """
    session.ensure_editable()

    results: list[Reconciliation] = []
    for line in session.lines:
        entity_ref = session.entity_ref(line)
        polarity = polarities.get(entity_ref)
        if polarity is None:
            raise PolarityUndeterminedError(entity_ref)

        results.append(reconcile(
            line.system_quantity,
            line.effective_counted,
            entity_ref,
            after_id=line.snapshot_as_of,
            polarity=polarity,
            kind=MovementKind.STOCK_TAKE,
            reference=f"stock-take:{session.session_id}",
            memo=f"Stock take {session.store_id}: system {line.system_quantity}, "
                 f"counted {line.effective_counted}",
        ))

    return results
