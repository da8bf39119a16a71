"""
State Machines

재고 실사 세션의 상태 전이 관리.

전이 규칙:
- DRAFT → POSTED: 조정 Movement 전기 완료 (최종)
- DRAFT → DISCARDED: 부작용 없이 폐기 (최종)
"""

import logging
from enum import Enum
from typing import Iterable, Mapping

from core.types import StockTakeStatus

logger = logging.getLogger(__name__)


def _value(state: str | Enum) -> str:
    return state.value if isinstance(state, Enum) else str(state)


class StateMachineError(Exception):
    """허용되지 않은 상태 전이"""

    def __init__(self, machine: str, from_state: str, to_state: str, allowed: Iterable[str]):
        self.from_state = from_state
        self.to_state = to_state
        self.allowed = sorted(allowed)
        super().__init__(
            f"{machine}: {from_state} → {to_state} not allowed (allowed: {self.allowed})"
        )


class StateMachine:
    """전이 표 기반 상태 머신

    나가는 전이가 없는 상태는 종료 상태로 취급.

    Args:
        initial_state: 초기 상태
        transitions: {from_state: [to_states]}
        name: 로깅용 이름
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: Mapping[str, Iterable[str]],
        name: str = "StateMachine",
    ):
        self._table = {src: frozenset(map(_value, dst)) for src, dst in transitions.items()}
        self._state = _value(initial_state)
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        return self._state

    @property
    def history(self) -> list[tuple[str, str]]:
        """(이전, 이후) 전이 목록 사본"""
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return not self._table.get(self._state)

    def can_transition(self, to_state: str | Enum) -> bool:
        return _value(to_state) in self._table.get(self._state, frozenset())

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Returns:
            새 상태

        Raises:
            StateMachineError: 전이 표에 없는 전이
        """
        target = _value(to_state)
        if not self.can_transition(target):
            raise StateMachineError(
                self._name, self._state, target, self._table.get(self._state, ())
            )

        self._history.append((self._state, target))
        self._state = target
        logger.debug(f"{self._name}: {self._history[-1][0]} → {target}")
        return target


class StockTakeStateMachine(StateMachine):
    """재고 실사 세션 상태 머신 (POSTED / DISCARDED는 최종)"""

    TRANSITIONS: dict[str, list[str]] = {
        StockTakeStatus.DRAFT.value: [
            StockTakeStatus.POSTED.value,
            StockTakeStatus.DISCARDED.value,
        ],
    }

    def __init__(self, initial_state: str | StockTakeStatus = StockTakeStatus.DRAFT):
        super().__init__(initial_state, self.TRANSITIONS, name="StockTakeSession")

    @property
    def is_editable(self) -> bool:
        """실사 수량 입력 가능 여부"""
        return self.state == StockTakeStatus.DRAFT.value
