"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화.
금액/수량은 문자열 (Decimal 정밀도 유지).
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="API 버전")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")


class ErrorResponse(BaseModel):
    """업무 오류 응답"""

    error_code: str = Field(..., description="오류 코드")
    message: str = Field(..., description="조치 가능한 오류 메시지")
    retryable: bool = Field(default=False, description="재시도 가능 여부")
    details: dict[str, Any] = Field(default_factory=dict, description="상세 정보")


class EntityResponse(BaseModel):
    """엔티티 응답"""

    entity_ref: str
    kind: str
    polarity: str
    account_id: str | None = None
    product_id: str | None = None
    store_id: str | None = None
    name: str | None = None


class MovementResponse(BaseModel):
    """Movement 응답"""

    id: int | None = Field(default=None, description="시퀀스 키")
    entity_ref: str
    in_amount: str
    out_amount: str
    kind: str
    reference: str | None = None
    memo: str | None = None
    created_at: str


class BalanceResponse(BaseModel):
    """잔액 응답"""

    entity_ref: str
    as_of: int | None = Field(default=None, description="반영된 마지막 Movement id")
    value: str


class StatementLineResponse(MovementResponse):
    """원장 내역 행"""

    delta: str = Field(..., description="잔액 변화량")
    balance: str = Field(..., description="행 반영 후 잔액")


class StatementResponse(BaseModel):
    """원장 내역 응답"""

    entity_ref: str
    polarity: str
    from_id: int | None = None
    to_id: int | None = None
    opening_balance: str
    closing_balance: str
    lines: list[StatementLineResponse]


class ReconciliationResponse(BaseModel):
    """정합 결과 응답"""

    entity_ref: str
    system_balance: str
    counted: str
    variance: str = Field(..., description="counted - system_balance")
    after_id: int | None = None
    adjustment: MovementResponse | None = None


class TransferResponse(BaseModel):
    """매장 간 이동 응답"""

    from_store: str
    to_store: str
    reference: str
    movements: list[MovementResponse]


class InventoryItemResponse(BaseModel):
    """매장 재고 항목"""

    product_id: str
    quantity: str
    last_movement_id: int | None = None


class StoreInventoryResponse(BaseModel):
    """매장 재고 현황 응답"""

    store_id: str
    as_of: int | None = None
    total_quantity: str
    items: list[InventoryItemResponse]


class ProductTotalResponse(BaseModel):
    """상품별 전 매장 합계"""

    product_id: str
    total: str
    stores: dict[str, str] = Field(..., description="매장 id -> 수량")


class InventoryTotalsResponse(BaseModel):
    """전 매장 재고 합계 응답"""

    as_of: int | None = None
    total_quantity: str
    products: list[ProductTotalResponse]


class StockTakeLineResponse(BaseModel):
    """실사 항목 응답"""

    product_id: str
    system_quantity: str
    snapshot_as_of: int | None = None
    counted_quantity: str | None = None
    variance: str


class StockTakeSummaryResponse(BaseModel):
    """실사 요약 응답"""

    total_items: int
    counted_items: int
    items_with_variance: int
    total_system_quantity: str
    total_counted_quantity: str
    positive_variance: str
    negative_variance: str
    net_variance: str


class StockTakeListItem(BaseModel):
    """실사 세션 목록 항목"""

    session_id: str
    store_id: str
    status: str
    started_at: str
    posted_at: str | None = None
    discarded_at: str | None = None


class StockTakeResponse(StockTakeListItem):
    """실사 세션 응답"""

    lines: list[StockTakeLineResponse]
    summary: StockTakeSummaryResponse


class StockTakePostResponse(BaseModel):
    """실사 전기 응답"""

    session: StockTakeResponse
    adjustments: list[MovementResponse]
    variances: dict[str, str]
    summary: StockTakeSummaryResponse
