"""
재고 실사 세션 모델 테스트
"""

from decimal import Decimal

import pytest

from core.ledger.errors import (
    AlreadyPostedError,
    InvalidMovementError,
    LineNotFoundError,
    SessionDiscardedError,
)
from core.ledger.movement import Balance
from core.ledger.stock_take import StockTakeLine, StockTakeSession
from core.types import EntityRef, StockTakeStatus


def _open() -> StockTakeSession:
    return StockTakeSession.open("S-01", [
        Balance(EntityRef.stock("P-01", "S-01"), 3, Decimal("200")),
        Balance(EntityRef.stock("P-02", "S-01"), 8, Decimal("12")),
    ])


class TestOpen:
    """세션 개시"""

    def test_snapshot_lines(self) -> None:
        session = _open()

        assert session.status == StockTakeStatus.DRAFT.value
        assert session.is_draft
        assert session.store_id == "S-01"
        assert [line.product_id for line in session.lines] == ["P-01", "P-02"]
        assert session.lines[0].system_quantity == Decimal("200")
        assert session.lines[0].snapshot_as_of == 3
        assert session.lines[0].counted_quantity is None

    def test_unique_session_ids(self) -> None:
        assert _open().session_id != _open().session_id

    def test_rejects_other_store(self) -> None:
        with pytest.raises(InvalidMovementError):
            StockTakeSession.open("S-01", [
                Balance(EntityRef.stock("P-01", "S-02"), 1, Decimal("1")),
            ])

    def test_rejects_account_entity(self) -> None:
        with pytest.raises(InvalidMovementError):
            StockTakeSession.open("S-01", [
                Balance(EntityRef.account("1100"), 1, Decimal("1")),
            ])


class TestRecordCount:
    """실사 수량 입력"""

    def test_record_count(self) -> None:
        session = _open()

        line = session.record_count("P-01", "185")

        assert line.counted_quantity == Decimal("185")
        assert line.variance == Decimal("-15")

    def test_recount_overwrites(self) -> None:
        session = _open()
        session.record_count("P-01", "185")

        session.record_count("P-01", "190")

        assert session.line_for("P-01").counted_quantity == Decimal("190")

    def test_unknown_product(self) -> None:
        session = _open()

        with pytest.raises(LineNotFoundError) as exc_info:
            session.record_count("P-99", "1")

        assert exc_info.value.product_id == "P-99"

    def test_negative_rejected(self) -> None:
        session = _open()

        with pytest.raises(InvalidMovementError):
            session.record_count("P-01", "-1")

    def test_float_rejected(self) -> None:
        session = _open()

        with pytest.raises(InvalidMovementError):
            session.record_count("P-01", 1.0)  # type: ignore

    def test_posted_is_frozen(self) -> None:
        session = _open()
        session.mark_posted()

        with pytest.raises(AlreadyPostedError):
            session.record_count("P-01", "1")

    def test_discarded_is_frozen(self) -> None:
        session = _open()
        session.mark_discarded()

        with pytest.raises(SessionDiscardedError):
            session.record_count("P-01", "1")


class TestTransitions:
    """DRAFT → POSTED / DISCARDED"""

    def test_mark_posted(self) -> None:
        session = _open()

        session.mark_posted()

        assert session.status == StockTakeStatus.POSTED.value
        assert session.posted_at is not None

    def test_double_post(self) -> None:
        session = _open()
        session.mark_posted()

        with pytest.raises(AlreadyPostedError):
            session.mark_posted()

    def test_discard_after_post(self) -> None:
        session = _open()
        session.mark_posted()

        with pytest.raises(AlreadyPostedError):
            session.mark_discarded()

    def test_post_after_discard(self) -> None:
        session = _open()
        session.mark_discarded()

        assert session.status == StockTakeStatus.DISCARDED.value
        with pytest.raises(SessionDiscardedError):
            session.mark_posted()


class TestSummary:
    """실사 요약"""

    def test_summary(self) -> None:
        session = _open()
        session.record_count("P-01", "185")
        session.record_count("P-02", "14")

        summary = session.summary()

        assert summary.total_items == 2
        assert summary.counted_items == 2
        assert summary.items_with_variance == 2
        assert summary.total_system_quantity == Decimal("212")
        assert summary.total_counted_quantity == Decimal("199")
        assert summary.positive_variance == Decimal("2")
        assert summary.negative_variance == Decimal("15")
        assert summary.net_variance == Decimal("-13")

    def test_uncounted_lines_have_no_variance(self) -> None:
        session = _open()

        summary = session.summary()

        assert summary.counted_items == 0
        assert summary.items_with_variance == 0
        assert summary.total_counted_quantity == summary.total_system_quantity

    def test_to_dict(self) -> None:
        session = _open()
        session.record_count("P-02", "12")

        data = session.to_dict()

        assert data["status"] == "DRAFT"
        assert data["posted_at"] is None
        assert data["lines"][0]["counted_quantity"] is None
        assert data["lines"][1]["counted_quantity"] == "12"
        assert data["summary"]["net_variance"] == "0"


class TestLine:
    def test_effective_counted_defaults_to_system(self) -> None:
        line = StockTakeLine(product_id="P-01", system_quantity=Decimal("7"), snapshot_as_of=None)

        assert not line.is_counted
        assert line.effective_counted == Decimal("7")
        assert line.variance == Decimal("0")
