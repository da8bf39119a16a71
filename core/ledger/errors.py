"""
Ledger 예외 정의

모든 예외는 LedgerError를 상속.
- error_code: API 응답용 고정 코드
- user_message: 사용자에게 보여줄 조치 가능한 메시지
- retryable: Service 계층 재시도 대상 여부
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Ledger 기본 예외"""

    error_code: str = "LEDGER_ERROR"
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.details = details

    @property
    def user_message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        """API 응답용 딕셔너리"""
        return {
            "error_code": self.error_code,
            "message": self.user_message,
            "retryable": self.retryable,
            "details": {k: str(v) if v is not None else None for k, v in self.details.items()},
        }


class OrderingError(LedgerError):
    """Replay 입력이 id 오름차순이 아님

    Replayer는 절대 임의로 재정렬하지 않음.
    """

    error_code = "ORDERING_ERROR"

    def __init__(self, position: int, previous_id: Any, current_id: Any):
        super().__init__(
            f"Movement order violation at position {position}: "
            f"id {current_id!r} does not follow {previous_id!r}",
            position=position,
            previous_id=previous_id,
            current_id=current_id,
        )
        self.position = position
        self.previous_id = previous_id
        self.current_id = current_id

    @property
    def user_message(self) -> str:
        return "Movements must be replayed in ascending id order; sort them before replaying."


class PolarityUndeterminedError(LedgerError):
    """엔티티의 잔액 부호 규칙이 분류되지 않음"""

    error_code = "POLARITY_UNDETERMINED"

    def __init__(self, entity_ref: Any):
        super().__init__(
            f"Polarity is not classified for entity {entity_ref}",
            entity_ref=entity_ref,
        )
        self.entity_ref = entity_ref

    @property
    def user_message(self) -> str:
        return f"{self.entity_ref} is not registered; register it with a polarity first."


class PolarityConflictError(LedgerError):
    """이미 등록된 엔티티를 다른 부호 규칙으로 재등록 시도"""

    error_code = "POLARITY_CONFLICT"

    def __init__(self, entity_ref: Any, existing: Any, requested: Any):
        super().__init__(
            f"Entity {entity_ref} is already registered as {existing}, not {requested}",
            entity_ref=entity_ref,
            existing=existing,
            requested=requested,
        )
        self.entity_ref = entity_ref

    @property
    def user_message(self) -> str:
        return f"{self.entity_ref} already has a fixed polarity and cannot be reclassified."


class InvalidMovementError(LedgerError):
    """Movement 불변식 위반 (음수 금액, 양방향 동시 기재, float 금액 등)"""

    error_code = "INVALID_MOVEMENT"


class AlreadyPostedError(LedgerError):
    """이미 전기된 재고 실사 세션 (멱등성 가드)"""

    error_code = "ALREADY_POSTED"

    def __init__(self, session_id: str):
        super().__init__(f"Stock take {session_id} is already posted", session_id=session_id)
        self.session_id = session_id

    @property
    def user_message(self) -> str:
        return "Stock take already posted; record a counter-adjustment to correct it."


class SessionNotFoundError(LedgerError):
    """재고 실사 세션 없음"""

    error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(f"Stock take {session_id} not found", session_id=session_id)
        self.session_id = session_id

    @property
    def user_message(self) -> str:
        return "Stock take not found; it may have been discarded or never opened."


class SessionDiscardedError(LedgerError):
    """폐기된 재고 실사 세션에 대한 변경/전기 시도"""

    error_code = "SESSION_DISCARDED"

    def __init__(self, session_id: str):
        super().__init__(f"Stock take {session_id} was discarded", session_id=session_id)
        self.session_id = session_id

    @property
    def user_message(self) -> str:
        return "Stock take was discarded; open a new stock take to count again."


class StorageUnavailable(LedgerError):
    """저장소 일시 장애 (재시도 가능)"""

    error_code = "STORAGE_UNAVAILABLE"
    retryable = True

    @property
    def user_message(self) -> str:
        return "Ledger storage is temporarily unavailable; try again shortly."


class ConcurrentAppendConflict(LedgerError):
    """같은 엔티티에 대한 동시 append 충돌 (재조회 후 재시도 가능)"""

    error_code = "CONCURRENT_APPEND_CONFLICT"
    retryable = True

    def __init__(self, entity_ref: Any, expected_last_id: Any, actual_last_id: Any):
        super().__init__(
            f"Concurrent append on {entity_ref}: expected last id "
            f"{expected_last_id!r}, found {actual_last_id!r}",
            entity_ref=entity_ref,
            expected_last_id=expected_last_id,
            actual_last_id=actual_last_id,
        )
        self.entity_ref = entity_ref
        self.expected_last_id = expected_last_id
        self.actual_last_id = actual_last_id

    @property
    def user_message(self) -> str:
        return f"{self.entity_ref} changed while saving; reload and try again."


class LineNotFoundError(LedgerError):
    """재고 실사 세션에 없는 상품"""

    error_code = "LINE_NOT_FOUND"

    def __init__(self, session_id: str, product_id: str):
        super().__init__(
            f"Product {product_id} is not part of stock take {session_id}",
            session_id=session_id,
            product_id=product_id,
        )
        self.product_id = product_id

    @property
    def user_message(self) -> str:
        return f"Product {self.product_id} was not in stock when this count was opened."


class InsufficientStockError(LedgerError):
    """매장 간 이동 수량이 출고 매장 재고보다 많음

    shortages: [{"product_id", "requested", "available", "shortfall"}, ...]
    """

    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, store_id: str, shortages: list[dict[str, Any]]):
        super().__init__(
            f"Insufficient stock in store {store_id} for {len(shortages)} product(s)",
            store_id=store_id,
        )
        self.store_id = store_id
        self.shortages = shortages

    @property
    def user_message(self) -> str:
        return (
            f"Insufficient quantity in store {self.store_id} for "
            f"{len(self.shortages)} product(s); reduce the transfer quantities."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["details"]["shortages"] = [
            {k: str(v) for k, v in item.items()} for item in self.shortages
        ]
        return data
