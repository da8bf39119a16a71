"""
키별 asyncio 잠금

같은 엔티티(또는 같은 재고 실사 세션)에 대한 작업은 asyncio.Lock으로 직렬화.
여러 키를 잠글 때는 정렬 순서로 획득 (교착 방지).
보유자/대기자가 없어진 잠금은 레지스트리에서 제거.
프로세스 간 경합은 expected_last_id 낙관적 검사와 DB 조건부 UPDATE가 담당.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Iterable

from core.types import EntityRef


class KeyedLocks:
    """문자열 키별 asyncio.Lock 레지스트리

    사용 예시:
    ```python
    locks = KeyedLocks()
    async with locks.hold("st-1"):
        ...
    ```
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def _hold_one(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """여러 키 잠금 (정렬 순서, 중복 제거)"""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._hold_one(key))
            yield


class EntityLocks(KeyedLocks):
    """엔티티별 잠금 (EntityRef 키)

    사용 예시:
    ```python
    locks = EntityLocks()
    async with locks.hold(ref_a, ref_b):
        ...  # 두 엔티티 모두 잠금
    ```
    """

    def is_locked(self, entity_ref: EntityRef) -> bool:  # type: ignore[override]
        return super().is_locked(entity_ref.key)

    @asynccontextmanager
    async def hold(self, *entity_refs: EntityRef) -> AsyncIterator[None]:  # type: ignore[override]
        async with super().hold(*_keys(entity_refs)):
            yield


def _keys(entity_refs: Iterable[EntityRef]) -> list[str]:
    return [ref.key for ref in entity_refs]
