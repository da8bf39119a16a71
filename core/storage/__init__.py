"""
스토리지 모듈

재고 실사 세션 저장소 제공
"""

from core.storage.stock_take_store import StockTakeStore

__all__ = [
    "StockTakeStore",
]
