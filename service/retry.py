"""
재시도 정책

Service 계층만 재시도를 수행 (순수 컴포넌트는 재시도/I/O 없음).

- ConcurrentAppendConflict: 재조회 후 재시도 (operation 전체를 다시 실행)
- StorageUnavailable: 지수 백오프 후 재시도
- 예산 소진 시 마지막 예외를 그대로 전파
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from core.config.loader import RetryConfig
from core.constants import Defaults
from core.ledger.errors import ConcurrentAppendConflict, StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """재시도 정책

    Attributes:
        conflict_max_attempts: 충돌 시 최대 시도 횟수 (첫 시도 포함)
        storage_max_attempts: 저장소 장애 시 최대 시도 횟수 (첫 시도 포함)
        backoff_base_sec: 첫 백오프 대기 시간
        backoff_max_sec: 최대 백오프 대기 시간
    """

    conflict_max_attempts: int = Defaults.CONFLICT_MAX_ATTEMPTS
    storage_max_attempts: int = Defaults.STORAGE_MAX_ATTEMPTS
    backoff_base_sec: float = Defaults.BACKOFF_BASE_SEC
    backoff_max_sec: float = Defaults.BACKOFF_MAX_SEC

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            conflict_max_attempts=config.conflict_max_attempts,
            storage_max_attempts=config.storage_max_attempts,
            backoff_base_sec=config.backoff_base_sec,
            backoff_max_sec=config.backoff_max_sec,
        )

    def backoff(self, attempt: int) -> float:
        """attempt번째 실패 후 대기 시간 (0부터)"""
        return min(self.backoff_base_sec * (2 ** attempt), self.backoff_max_sec)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    name: str = "operation",
    retry_conflicts: bool = True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """재시도 정책에 따라 operation 실행

    operation은 매 시도마다 필요한 상태를 다시 조회해야 함
    (충돌 후 재시도는 재조회를 전제로 함).

    Args:
        operation: 인자 없는 코루틴 함수
        policy: 재시도 정책
        name: 로그용 이름
        retry_conflicts: False면 ConcurrentAppendConflict를 즉시 전파
        sleep: 대기 함수 (테스트 주입용)

    Returns:
        operation 결과

    Raises:
        ConcurrentAppendConflict: 충돌 재시도 예산 소진
        StorageUnavailable: 저장소 재시도 예산 소진
    """
    conflict_failures = 0
    storage_failures = 0

    while True:
        try:
            return await operation()

        except ConcurrentAppendConflict as e:
            conflict_failures += 1
            if not retry_conflicts or conflict_failures >= policy.conflict_max_attempts:
                logger.warning(
                    f"{name}: 동시 append 충돌, 재시도 중단",
                    extra={"attempts": conflict_failures, "error": str(e)},
                )
                raise
            logger.info(
                f"{name}: 동시 append 충돌, 재조회 후 재시도",
                extra={"attempt": conflict_failures, "error": str(e)},
            )

        except StorageUnavailable as e:
            storage_failures += 1
            if storage_failures >= policy.storage_max_attempts:
                logger.error(
                    f"{name}: 저장소 장애, 재시도 중단",
                    extra={"attempts": storage_failures, "error": str(e)},
                )
                raise
            delay = policy.backoff(storage_failures - 1)
            logger.warning(
                f"{name}: 저장소 장애, {delay:.2f}초 후 재시도",
                extra={"attempt": storage_failures, "error": str(e)},
            )
            await sleep(delay)
