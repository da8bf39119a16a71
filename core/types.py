"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class EntityKind(str, Enum):
    """Ledger 엔티티 종류"""

    ACCOUNT = "ACCOUNT"  # 회계 계정 (공급처 원장, 현금 계정 등)
    STOCK = "STOCK"  # 매장별 상품 재고


class EntityPolarity(str, Enum):
    """잔액 부호 규칙

    엔티티 등록 시 한 번 지정되고 이후 변경 불가.
    현재 잔액의 부호로 추론하지 않음.
    """

    NORMAL_DEBIT = "NORMAL_DEBIT"  # in 증가, out 감소 (자산, 재고)
    NORMAL_CREDIT = "NORMAL_CREDIT"  # out 증가, in 감소 (부채, 매입처)


class MovementKind(str, Enum):
    """Movement 유형"""

    OPENING = "OPENING"  # 기초 잔액
    RECEIPT = "RECEIPT"  # 입고
    SALE = "SALE"  # 판매 출고
    RETURN = "RETURN"  # 반품
    TRANSFER_IN = "TRANSFER_IN"  # 매장 간 이동 (입고측)
    TRANSFER_OUT = "TRANSFER_OUT"  # 매장 간 이동 (출고측)
    STOCK_TAKE = "STOCK_TAKE"  # 재고 실사 조정
    QUANTITY_UPDATE = "QUANTITY_UPDATE"  # 수량 직접 수정 조정
    JOURNAL = "JOURNAL"  # 일반 분개
    PAYMENT = "PAYMENT"  # 지급/수금
    COUNTER_ADJUSTMENT = "COUNTER_ADJUSTMENT"  # 기 전기분 정정 (역분개)
    CHECKPOINT = "CHECKPOINT"  # 금액 0 체크포인트


# 조정 Movement로 취급되는 유형
ADJUSTMENT_KINDS: frozenset[str] = frozenset({
    MovementKind.STOCK_TAKE.value,
    MovementKind.QUANTITY_UPDATE.value,
    MovementKind.COUNTER_ADJUSTMENT.value,
})


class StockTakeStatus(str, Enum):
    """재고 실사 세션 상태"""

    DRAFT = "DRAFT"
    POSTED = "POSTED"
    DISCARDED = "DISCARDED"


@dataclass(frozen=True)
class EntityRef:
    """Ledger 엔티티 식별자 (불변)

    계정: ACCOUNT:<account_id>
    재고: STOCK:<product_id>@<store_id>
    """

    kind: str
    account_id: str | None = None
    product_id: str | None = None
    store_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind == EntityKind.ACCOUNT.value:
            if not self.account_id:
                raise ValueError("ACCOUNT 엔티티에는 account_id가 필요합니다")
        elif self.kind == EntityKind.STOCK.value:
            if not self.product_id or not self.store_id:
                raise ValueError("STOCK 엔티티에는 product_id와 store_id가 필요합니다")
        else:
            raise ValueError(f"유효하지 않은 엔티티 종류입니다: '{self.kind}'")

    @classmethod
    def account(cls, account_id: str) -> "EntityRef":
        """계정 엔티티 생성"""
        return cls(kind=EntityKind.ACCOUNT.value, account_id=str(account_id))

    @classmethod
    def stock(cls, product_id: str, store_id: str) -> "EntityRef":
        """재고 엔티티 생성"""
        return cls(
            kind=EntityKind.STOCK.value,
            product_id=str(product_id),
            store_id=str(store_id),
        )

    @classmethod
    def parse(cls, key: str) -> "EntityRef":
        """문자열 키에서 EntityRef 복원

        Args:
            key: "ACCOUNT:1100" 또는 "STOCK:P-01@S-01"

        Raises:
            ValueError: 형식이 잘못된 경우
        """
        kind, sep, rest = key.partition(":")
        if not sep or not rest:
            raise ValueError(f"유효하지 않은 엔티티 키입니다: '{key}'")

        if kind == EntityKind.ACCOUNT.value:
            return cls.account(rest)

        if kind == EntityKind.STOCK.value:
            product_id, at, store_id = rest.rpartition("@")
            if not at or not product_id or not store_id:
                raise ValueError(f"유효하지 않은 재고 엔티티 키입니다: '{key}'")
            return cls.stock(product_id, store_id)

        raise ValueError(f"유효하지 않은 엔티티 종류입니다: '{kind}'")

    @property
    def key(self) -> str:
        """저장/캐시용 문자열 키"""
        if self.kind == EntityKind.ACCOUNT.value:
            return f"{self.kind}:{self.account_id}"
        return f"{self.kind}:{self.product_id}@{self.store_id}"

    @property
    def is_stock(self) -> bool:
        return self.kind == EntityKind.STOCK.value

    def __str__(self) -> str:
        return self.key
