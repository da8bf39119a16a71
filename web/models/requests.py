"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증.
금액/수량은 문자열로 받아 Decimal로 변환 (float 금지).
"""

from pydantic import BaseModel, Field

from core.types import EntityPolarity, MovementKind


class RegisterEntityRequest(BaseModel):
    """엔티티 등록 요청"""

    entity_ref: str = Field(..., description="엔티티 키 (ACCOUNT:<id> 또는 STOCK:<product>@<store>)")
    polarity: EntityPolarity = Field(..., description="잔액 부호 규칙 (등록 후 변경 불가)")
    name: str | None = Field(default=None, description="표시 이름")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"entity_ref": "ACCOUNT:2100", "polarity": "NORMAL_CREDIT", "name": "Supplier A"},
                {"entity_ref": "STOCK:P-01@S-01", "polarity": "NORMAL_DEBIT"},
            ]
        }
    }


class MovementCreateRequest(BaseModel):
    """Movement 기록 요청"""

    entity_ref: str = Field(..., description="엔티티 키")
    in_amount: str = Field(default="0", description="in 금액/수량")
    out_amount: str = Field(default="0", description="out 금액/수량")
    kind: MovementKind = Field(..., description="Movement 유형")
    reference: str | None = Field(default=None, description="참조 (전표 번호 등)")
    memo: str | None = Field(default=None, description="메모")
    expected_last_id: int | None = Field(
        default=None,
        ge=0,
        description="낙관적 동시성 검사용 직전 마지막 id (0: Movement 없음, None이면 검사 안 함)",
    )


class TransferItemRequest(BaseModel):
    """이동 항목"""

    product_id: str = Field(..., description="상품 ID")
    quantity: str = Field(..., description="이동 수량")


class TransferCreateRequest(BaseModel):
    """매장 간 재고 이동 요청"""

    from_store: str = Field(..., description="출고 매장")
    to_store: str = Field(..., description="입고 매장")
    items: list[TransferItemRequest] = Field(..., min_length=1, description="이동 항목")
    reference: str | None = Field(default=None, description="참조 (없으면 자동 생성)")
    memo: str | None = Field(default=None, description="메모")


class QuantityUpdateRequest(BaseModel):
    """재고 수량 직접 수정 요청"""

    quantity: str = Field(..., description="새 수량")
    memo: str | None = Field(default=None, description="수정 사유")


class ReconcileRequest(BaseModel):
    """정합 미리보기 요청"""

    counted: str = Field(..., description="관측값 (실사 수량, 거래처 확인 잔액)")
    kind: MovementKind | None = Field(default=None, description="조정 Movement 유형")


class AdjustmentRequest(BaseModel):
    """조정 기록 요청 (기 전기분 정정 등)"""

    counted: str = Field(..., description="맞출 잔액")
    kind: MovementKind = Field(default=MovementKind.COUNTER_ADJUSTMENT, description="조정 유형")
    reference: str | None = Field(default=None, description="참조 (정정 대상 실사 등)")
    memo: str | None = Field(default=None, description="메모")


class StockTakeOpenRequest(BaseModel):
    """재고 실사 개시 요청"""

    store_id: str = Field(..., description="매장 ID")
    product_ids: list[str] | None = Field(
        default=None, description="대상 상품 (없으면 매장의 모든 재고 엔티티)"
    )


class CountRequest(BaseModel):
    """실사 수량 입력 요청"""

    counted: str = Field(..., description="실사 수량")
