"""
잔액 캐시 (LRU)

키: (엔티티 키, as_of)
- 과거 시점 (as_of가 정수): Movement는 append-only이고 id는 전역 단조 증가이므로
  엔티티 마지막 id 이하의 as_of 잔액은 변하지 않음
- 최신 잔액 (as_of = LATEST): 저장소 지문 (Movement 수, 마지막 id)과 함께 저장.
  지문이 같으면 재사용, 뒤에 Movement가 추가되었으면 tail만 replay하여 연장

캐시는 언제나 replay로 재계산 가능한 사본일 뿐.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Union

from core.constants import Defaults
from core.ledger.movement import Balance, MovementStats
from core.types import EntityRef

logger = logging.getLogger(__name__)

LATEST = "LATEST"

CacheKey = tuple[str, Union[int, str]]


@dataclass(frozen=True)
class CachedBalance:
    """캐시 항목

    fingerprint는 최신 잔액 항목에만 존재.
    """

    balance: Balance
    fingerprint: MovementStats | None = None


class BalanceCache:
    """LRU 잔액 캐시

    Args:
        max_entries: 최대 항목 수 (초과 시 가장 오래 사용하지 않은 항목 제거)
    """

    def __init__(self, max_entries: int = Defaults.CACHE_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, CachedBalance] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _get(self, key: CacheKey) -> CachedBalance | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def _put(self, key: CacheKey, entry: CachedBalance) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"잔액 캐시 제거: {evicted}")

    def get_latest(self, entity_ref: EntityRef) -> CachedBalance | None:
        """최신 잔액 항목 (지문 포함)"""
        return self._get((entity_ref.key, LATEST))

    def put_latest(self, balance: Balance, fingerprint: MovementStats) -> None:
        self._put((balance.entity_ref.key, LATEST), CachedBalance(balance, fingerprint))

    def get_at(self, entity_ref: EntityRef, as_of: int) -> Balance | None:
        """과거 시점 잔액"""
        entry = self._get((entity_ref.key, as_of))
        return entry.balance if entry else None

    def put_at(self, entity_ref: EntityRef, as_of: int, balance: Balance) -> None:
        self._put((entity_ref.key, as_of), CachedBalance(balance))

    def invalidate(self, entity_ref: EntityRef) -> None:
        """엔티티의 최신 잔액 항목 제거

        과거 시점 항목은 append로 변하지 않으므로 유지.
        """
        self._entries.pop((entity_ref.key, LATEST), None)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0
