"""
수량 원장 (Quantity Ledger)

계정 잔액과 매장별 재고 수량을 append-only Movement로 기록하고,
잔액은 언제나 Movement replay로 재계산.

사용 예시:
```python
from core.ledger import Movement, MovementStore, reconcile, replay

# Movement 저장
store = MovementStore(db)
await store.append(Movement.incoming(ref, "100", MovementKind.RECEIPT))

# 잔액 계산
result = replay(await store.query(ref), EntityPolarity.NORMAL_DEBIT)
result.final_balance

# 실사 수량과 정합
rec = reconcile(
    result.final_balance, "95", ref,
    after_id=result.last_movement_id, polarity=EntityPolarity.NORMAL_DEBIT,
)
rec.adjustment  # out 5
```
"""

from core.ledger.directory import EntityDirectory, EntityRecord
from core.ledger.errors import (
    AlreadyPostedError,
    ConcurrentAppendConflict,
    InsufficientStockError,
    InvalidMovementError,
    LedgerError,
    LineNotFoundError,
    OrderingError,
    PolarityConflictError,
    PolarityUndeterminedError,
    SessionDiscardedError,
    SessionNotFoundError,
    StorageUnavailable,
)
from core.ledger.movement import Balance, Movement, MovementStats, to_amount
from core.ledger.reconciliation import (
    Reconciliation,
    next_sequence_key,
    reconcile,
    reconcile_balance,
    reconcile_session,
)
from core.ledger.replayer import (
    ReplayResult,
    ReplayStep,
    check_order,
    replay,
    resolve_polarity,
    sort_for_replay,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.stock_take import StockTakeLine, StockTakeSession, StockTakeSummary
from core.ledger.store import MovementStore, insert_movement

__all__ = [
    # 모델
    "Movement",
    "Balance",
    "MovementStats",
    "StockTakeLine",
    "StockTakeSession",
    "StockTakeSummary",
    "Reconciliation",
    "ReplayResult",
    "ReplayStep",
    "EntityRecord",
    # 순수 함수
    "replay",
    "sort_for_replay",
    "check_order",
    "resolve_polarity",
    "reconcile",
    "reconcile_balance",
    "reconcile_session",
    "next_sequence_key",
    "to_amount",
    # 저장소
    "MovementStore",
    "EntityDirectory",
    "insert_movement",
    "init_ledger_schema",
    # 예외
    "LedgerError",
    "OrderingError",
    "PolarityUndeterminedError",
    "PolarityConflictError",
    "InvalidMovementError",
    "InsufficientStockError",
    "AlreadyPostedError",
    "SessionNotFoundError",
    "SessionDiscardedError",
    "LineNotFoundError",
    "StorageUnavailable",
    "ConcurrentAppendConflict",
]
