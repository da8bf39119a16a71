"""
Service 레이어

원장 조회/기록/재고 실사 오케스트레이션 (캐시, 잠금, 재시도).
"""

from service.balance_cache import BalanceCache
from service.ledger_service import (
    LedgerService,
    LedgerStatement,
    InventoryTotals,
    StockTakePostResult,
    StoreInventory,
    TransferResult,
)
from service.locks import EntityLocks
from service.retry import RetryPolicy, run_with_retry

__all__ = [
    "LedgerService",
    "LedgerStatement",
    "StockTakePostResult",
    "StoreInventory",
    "InventoryTotals",
    "TransferResult",
    "BalanceCache",
    "EntityLocks",
    "RetryPolicy",
    "run_with_retry",
]
