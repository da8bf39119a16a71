"""
Balance Replayer 테스트

정렬 검증, 부호 규칙, 분할 replay 성질.
"""

from decimal import Decimal

import pytest

from core.ledger.errors import (
    InvalidMovementError,
    OrderingError,
    PolarityUndeterminedError,
)
from core.ledger.movement import Movement
from core.ledger.replayer import check_order, replay, sort_for_replay
from core.types import EntityPolarity, EntityRef, MovementKind


REF = EntityRef.stock("P-01", "S-01")


def _movements() -> list[Movement]:
    """(in=100), (out=30), (in=50)"""
    return [
        Movement.incoming(REF, "100", MovementKind.RECEIPT, id=1),
        Movement.outgoing(REF, "30", MovementKind.SALE, id=2),
        Movement.incoming(REF, "50", MovementKind.RECEIPT, id=3),
    ]


class TestReplay:
    """replay 테스트"""

    def test_normal_debit(self) -> None:
        """NORMAL_DEBIT: in 증가, out 감소"""
        result = replay(_movements(), EntityPolarity.NORMAL_DEBIT)

        assert result.running == [Decimal("100"), Decimal("70"), Decimal("120")]
        assert result.final_balance == Decimal("120")
        assert result.last_movement_id == 3

    def test_normal_credit(self) -> None:
        """NORMAL_CREDIT: 같은 Movement, 부호 반대"""
        result = replay(_movements(), EntityPolarity.NORMAL_CREDIT)

        assert result.running == [Decimal("-100"), Decimal("-70"), Decimal("-120")]
        assert result.final_balance == Decimal("-120")

    def test_polarity_as_string(self) -> None:
        result = replay(_movements(), "NORMAL_DEBIT")

        assert result.polarity == EntityPolarity.NORMAL_DEBIT
        assert result.final_balance == Decimal("120")

    def test_empty_returns_opening(self) -> None:
        """Movement 없음 → 기초 잔액"""
        result = replay([], EntityPolarity.NORMAL_DEBIT, opening_balance="42.5")

        assert result.steps == ()
        assert result.final_balance == Decimal("42.5")
        assert result.last_movement_id is None

    def test_opening_balance_applied(self) -> None:
        result = replay(_movements(), EntityPolarity.NORMAL_DEBIT, opening_balance=Decimal("10"))

        assert result.running[0] == Decimal("110")
        assert result.final_balance == Decimal("130")

    def test_checkpoint_is_noop_in_trace(self) -> None:
        """금액 0 Movement는 잔액을 바꾸지 않지만 trace에는 남음"""
        movements = [
            Movement.incoming(REF, "5", MovementKind.RECEIPT, id=1),
            Movement(entity_ref=REF, in_amount=0, out_amount=0, kind=MovementKind.CHECKPOINT, id=2),
        ]

        result = replay(movements, EntityPolarity.NORMAL_DEBIT)

        assert len(result.steps) == 2
        assert result.steps[1].delta == Decimal("0")
        assert result.running == [Decimal("5"), Decimal("5")]

    def test_step_delta(self) -> None:
        result = replay(_movements(), EntityPolarity.NORMAL_DEBIT)

        assert [s.delta for s in result.steps] == [
            Decimal("100"), Decimal("-30"), Decimal("50"),
        ]
        assert [s.movement_id for s in result.steps] == [1, 2, 3]

    def test_decimal_precision(self) -> None:
        """긴 체인에서도 오차 없음"""
        movements = [
            Movement.incoming(REF, "0.1", MovementKind.JOURNAL, id=i)
            for i in range(1, 1001)
        ]

        result = replay(movements, EntityPolarity.NORMAL_DEBIT)

        assert result.final_balance == Decimal("100.0")

    def test_float_opening_rejected(self) -> None:
        with pytest.raises(InvalidMovementError):
            replay([], EntityPolarity.NORMAL_DEBIT, opening_balance=1.5)  # type: ignore


class TestOrdering:
    """정렬 위반 테스트"""

    def test_unsorted_input_raises(self) -> None:
        movements = _movements()
        movements[0], movements[1] = movements[1], movements[0]

        with pytest.raises(OrderingError) as exc_info:
            replay(movements, EntityPolarity.NORMAL_DEBIT)

        assert exc_info.value.position == 1
        assert exc_info.value.previous_id == 2
        assert exc_info.value.current_id == 1

    def test_duplicate_id_raises(self) -> None:
        movements = [
            Movement.incoming(REF, "1", MovementKind.RECEIPT, id=5),
            Movement.incoming(REF, "1", MovementKind.RECEIPT, id=5),
        ]

        with pytest.raises(OrderingError):
            check_order(movements)

    def test_missing_id_raises(self) -> None:
        movements = [Movement.incoming(REF, "1", MovementKind.RECEIPT)]

        with pytest.raises(OrderingError):
            replay(movements, EntityPolarity.NORMAL_DEBIT)

    def test_replay_never_sorts(self) -> None:
        """역순 입력은 정렬하지 않고 거부"""
        movements = list(reversed(_movements()))

        with pytest.raises(OrderingError):
            replay(movements, EntityPolarity.NORMAL_DEBIT)

    def test_sort_for_replay(self) -> None:
        """호출자가 명시적으로 정렬한 후 replay"""
        movements = list(reversed(_movements()))

        result = replay(sort_for_replay(movements), EntityPolarity.NORMAL_DEBIT)

        assert result.final_balance == Decimal("120")

    def test_sort_for_replay_requires_ids(self) -> None:
        with pytest.raises(OrderingError):
            sort_for_replay([Movement.incoming(REF, "1", MovementKind.RECEIPT)])

    def test_ordering_error_user_message(self) -> None:
        error = OrderingError(1, 2, 1)

        assert error.error_code == "ORDERING_ERROR"
        assert "ascending id order" in error.user_message


class TestPolarity:
    """부호 규칙 검증"""

    @pytest.mark.parametrize("polarity", [None, "ASSET", ""])
    def test_undetermined_polarity(self, polarity: object) -> None:
        with pytest.raises(PolarityUndeterminedError):
            replay(_movements(), polarity)  # type: ignore


class TestChunking:
    """분할 replay 성질: replay(M) == replay(M[k:], opening=replay(M[:k]))"""

    @pytest.mark.parametrize("split", [0, 1, 2, 3])
    @pytest.mark.parametrize(
        "polarity", [EntityPolarity.NORMAL_DEBIT, EntityPolarity.NORMAL_CREDIT]
    )
    def test_chunked_replay_matches_full(self, split: int, polarity: EntityPolarity) -> None:
        movements = _movements()

        full = replay(movements, polarity)
        head = replay(movements[:split], polarity)
        tail = replay(movements[split:], polarity, opening_balance=head.final_balance)

        assert tail.final_balance == full.final_balance

    def test_deterministic(self) -> None:
        first = replay(_movements(), EntityPolarity.NORMAL_DEBIT)
        second = replay(_movements(), EntityPolarity.NORMAL_DEBIT)

        assert first.running == second.running
