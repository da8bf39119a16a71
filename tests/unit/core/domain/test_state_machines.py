"""
State Machine 테스트
"""

import pytest

from core.domain.state_machines import (
    StateMachine,
    StateMachineError,
    StockTakeStateMachine,
)
from core.types import StockTakeStatus


class TestStateMachine:
    """기본 상태 머신"""

    def test_transition_and_history(self) -> None:
        machine = StateMachine("A", {"A": ["B"], "B": ["C"]}, name="Test")

        machine.transition("B")
        machine.transition("C")

        assert machine.state == "C"
        assert machine.history == [("A", "B"), ("B", "C")]

    def test_invalid_transition(self) -> None:
        machine = StateMachine("A", {"A": ["B"]})

        with pytest.raises(StateMachineError):
            machine.transition("C")

        assert machine.state == "A"

    def test_history_is_copy(self) -> None:
        machine = StateMachine("A", {"A": ["B"]})
        machine.transition("B")

        machine.history.clear()

        assert len(machine.history) == 1


class TestStockTakeStateMachine:
    """재고 실사 상태 머신"""

    def test_initial_draft(self) -> None:
        machine = StockTakeStateMachine()

        assert machine.state == "DRAFT"
        assert machine.is_editable
        assert not machine.is_terminal

    @pytest.mark.parametrize("target", [StockTakeStatus.POSTED, StockTakeStatus.DISCARDED])
    def test_draft_to_terminal(self, target: StockTakeStatus) -> None:
        machine = StockTakeStateMachine()

        assert machine.transition(target) == target.value
        assert machine.is_terminal
        assert not machine.is_editable

    @pytest.mark.parametrize("initial", ["POSTED", "DISCARDED"])
    def test_terminal_states_are_final(self, initial: str) -> None:
        machine = StockTakeStateMachine(initial)

        for target in StockTakeStatus:
            assert not machine.can_transition(target)

        with pytest.raises(StateMachineError):
            machine.transition(StockTakeStatus.DRAFT)
