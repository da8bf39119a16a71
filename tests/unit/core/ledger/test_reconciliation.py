"""
Reconciliation Engine 테스트

차이 계산, 조정 Movement 생성, replay 수렴.
"""

from decimal import Decimal

import pytest

from core.ledger.errors import (
    AlreadyPostedError,
    InvalidMovementError,
    PolarityUndeterminedError,
    SessionDiscardedError,
)
from core.ledger.movement import Balance, Movement
from core.ledger.reconciliation import (
    next_sequence_key,
    reconcile,
    reconcile_balance,
    reconcile_session,
)
from core.ledger.replayer import replay
from core.ledger.stock_take import StockTakeSession
from core.types import EntityPolarity, EntityRef, MovementKind


REF = EntityRef.stock("P-01", "S-01")
SUPPLIER = EntityRef.account("2100")
DEBIT = EntityPolarity.NORMAL_DEBIT


class TestReconcile:
    """reconcile 테스트"""

    def test_shortage_creates_out_adjustment(self) -> None:
        """시스템 200, 실사 185 → variance -15, out=15"""
        rec = reconcile(Decimal("200"), Decimal("185"), REF, after_id=7, polarity=DEBIT)

        assert rec.variance == Decimal("-15")
        assert rec.has_variance
        assert rec.adjustment is not None
        assert rec.adjustment.in_amount == Decimal("0")
        assert rec.adjustment.out_amount == Decimal("15")
        assert rec.adjustment.kind == MovementKind.STOCK_TAKE.value

    def test_surplus_creates_in_adjustment(self) -> None:
        rec = reconcile("10", "12.5", REF, after_id=3, polarity=DEBIT)

        assert rec.variance == Decimal("2.5")
        assert rec.adjustment.in_amount == Decimal("2.5")
        assert rec.adjustment.out_amount == Decimal("0")

    def test_no_variance_no_adjustment(self) -> None:
        """counted == system → 조정 없음 (0 금액 Movement도 만들지 않음)"""
        rec = reconcile(Decimal("200"), Decimal("200.00"), REF, after_id=4, polarity=DEBIT)

        assert rec.variance == Decimal("0")
        assert not rec.has_variance
        assert rec.adjustment is None

    def test_provisional_sequence_key(self) -> None:
        """조정 Movement 임시 키는 스냅샷 마지막 id 다음"""
        rec = reconcile("5", "3", REF, after_id=41, polarity=DEBIT)

        assert rec.adjustment.id == 42
        assert rec.after_id == 41

    def test_sequence_key_without_movements(self) -> None:
        assert next_sequence_key(None) == 1
        assert next_sequence_key(9) == 10

    def test_reference_and_memo(self) -> None:
        rec = reconcile(
            "1", "2", REF,
            polarity=DEBIT,
            kind=MovementKind.QUANTITY_UPDATE,
            reference="quantity-update:S-01",
            memo="recount",
        )

        assert rec.adjustment.kind == "QUANTITY_UPDATE"
        assert rec.adjustment.reference == "quantity-update:S-01"
        assert rec.adjustment.memo == "recount"

    def test_to_dict(self) -> None:
        rec = reconcile("200", "185", REF, after_id=2, polarity=DEBIT)

        data = rec.to_dict()

        assert data["entity_ref"] == "STOCK:P-01@S-01"
        assert data["variance"] == "-15"
        assert data["adjustment"]["out_amount"] == "15"

    def test_float_counted_rejected(self) -> None:
        with pytest.raises(InvalidMovementError):
            reconcile("1", 1.5, REF, polarity=DEBIT)  # type: ignore

    def test_polarity_is_required(self) -> None:
        with pytest.raises(TypeError):
            reconcile("1", "2", REF)  # type: ignore[call-arg]

    @pytest.mark.parametrize("polarity", [None, "ASSET", ""])
    def test_unknown_polarity_rejected(self, polarity: object) -> None:
        with pytest.raises(PolarityUndeterminedError):
            reconcile("1", "2", REF, polarity=polarity)  # type: ignore[arg-type]


class TestConvergence:
    """replay(movements + [adjustment]) == counted"""

    def _history(self, ref: EntityRef) -> list[Movement]:
        return [
            Movement.incoming(ref, "250", MovementKind.RECEIPT, id=1),
            Movement.outgoing(ref, "60", MovementKind.SALE, id=4),
            Movement.incoming(ref, "10", MovementKind.RETURN, id=9),
        ]

    @pytest.mark.parametrize("counted", ["185", "200", "230", "0"])
    def test_normal_debit_converges(self, counted: str) -> None:
        movements = self._history(REF)
        system = replay(movements, EntityPolarity.NORMAL_DEBIT)

        rec = reconcile(
            system.final_balance, counted, REF,
            after_id=system.last_movement_id,
            polarity=EntityPolarity.NORMAL_DEBIT,
        )
        adjusted = movements + ([rec.adjustment] if rec.adjustment else [])

        assert replay(adjusted, EntityPolarity.NORMAL_DEBIT).final_balance == Decimal(counted)

    @pytest.mark.parametrize("counted", ["-185", "-200", "-230", "50"])
    def test_normal_credit_converges(self, counted: str) -> None:
        """NORMAL_CREDIT는 조정 방향이 반대"""
        movements = self._history(SUPPLIER)
        system = replay(movements, EntityPolarity.NORMAL_CREDIT)

        rec = reconcile(
            system.final_balance, counted, SUPPLIER,
            after_id=system.last_movement_id,
            polarity=EntityPolarity.NORMAL_CREDIT,
            kind=MovementKind.JOURNAL,
        )
        adjusted = movements + ([rec.adjustment] if rec.adjustment else [])

        assert replay(adjusted, EntityPolarity.NORMAL_CREDIT).final_balance == Decimal(counted)

    def test_credit_increase_uses_out_side(self) -> None:
        rec = reconcile("100", "130", SUPPLIER, polarity=EntityPolarity.NORMAL_CREDIT)

        assert rec.adjustment.out_amount == Decimal("30")
        assert rec.adjustment.in_amount == Decimal("0")

    def test_adjustment_sorts_after_snapshot(self) -> None:
        """임시 키로 replay 순서 검증 통과"""
        movements = self._history(REF)
        rec = reconcile("200", "185", REF, after_id=movements[-1].id, polarity=DEBIT)

        result = replay(movements + [rec.adjustment], EntityPolarity.NORMAL_DEBIT)

        assert result.last_movement_id == 10


class TestReconcileBalance:
    def test_uses_balance_as_of(self) -> None:
        balance = Balance(entity_ref=REF, as_of=12, value=Decimal("8"))

        rec = reconcile_balance(balance, "5", polarity=DEBIT)

        assert rec.after_id == 12
        assert rec.adjustment.id == 13
        assert rec.adjustment.out_amount == Decimal("3")


class TestReconcileSession:
    """세션 일괄 정합"""

    def _session(self) -> StockTakeSession:
        return StockTakeSession.open("S-01", [
            Balance(EntityRef.stock("P-01", "S-01"), 5, Decimal("200")),
            Balance(EntityRef.stock("P-02", "S-01"), 6, Decimal("40")),
            Balance(EntityRef.stock("P-03", "S-01"), None, Decimal("0")),
        ])

    def _polarities(self, session: StockTakeSession) -> dict[EntityRef, EntityPolarity]:
        return {session.entity_ref(line): DEBIT for line in session.lines}

    def test_one_reconciliation_per_line(self) -> None:
        session = self._session()
        session.record_count("P-01", "185")
        session.record_count("P-02", "40")

        results = reconcile_session(session, self._polarities(session))

        assert [r.entity_ref.product_id for r in results] == ["P-01", "P-02", "P-03"]
        assert results[0].variance == Decimal("-15")
        assert results[0].adjustment.out_amount == Decimal("15")
        assert results[0].adjustment.reference == f"stock-take:{session.session_id}"
        assert results[1].adjustment is None
        # 미실사 항목은 시스템 수량으로 간주
        assert results[2].adjustment is None

    def test_compares_against_snapshot(self) -> None:
        """조정 임시 키는 항목 스냅샷 기준"""
        session = self._session()
        session.record_count("P-02", "45")

        results = reconcile_session(session, self._polarities(session))

        assert results[1].after_id == 6
        assert results[1].adjustment.id == 7

    def test_polarity_override(self) -> None:
        session = self._session()
        session.record_count("P-01", "210")
        ref = EntityRef.stock("P-01", "S-01")

        results = reconcile_session(
            session, {**self._polarities(session), ref: EntityPolarity.NORMAL_CREDIT}
        )

        assert results[0].adjustment.out_amount == Decimal("10")

    def test_posted_session_rejected(self) -> None:
        session = self._session()
        session.mark_posted()

        with pytest.raises(AlreadyPostedError):
            reconcile_session(session, self._polarities(session))

    def test_discarded_session_rejected(self) -> None:
        session = self._session()
        session.mark_discarded()

        with pytest.raises(SessionDiscardedError):
            reconcile_session(session, self._polarities(session))

    def test_missing_polarity_rejected(self) -> None:
        """부호 규칙이 없는 항목은 기본값으로 대체하지 않음"""
        session = self._session()
        polarities = self._polarities(session)
        missing = EntityRef.stock("P-02", "S-01")
        del polarities[missing]

        with pytest.raises(PolarityUndeterminedError) as exc_info:
            reconcile_session(session, polarities)

        assert exc_info.value.details["entity_ref"] == missing

    def test_empty_polarities_rejected(self) -> None:
        with pytest.raises(PolarityUndeterminedError):
            reconcile_session(self._session(), {})
