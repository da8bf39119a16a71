"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AdjustmentRequest,
    CountRequest,
    MovementCreateRequest,
    QuantityUpdateRequest,
    ReconcileRequest,
    RegisterEntityRequest,
    StockTakeOpenRequest,
    TransferCreateRequest,
    TransferItemRequest,
)
from web.models.responses import (
    BalanceResponse,
    EntityResponse,
    ErrorResponse,
    HealthResponse,
    InventoryItemResponse,
    InventoryTotalsResponse,
    MovementResponse,
    ProductTotalResponse,
    ReconciliationResponse,
    StatementLineResponse,
    StatementResponse,
    StockTakeLineResponse,
    StockTakeListItem,
    StockTakePostResponse,
    StockTakeResponse,
    StockTakeSummaryResponse,
    StoreInventoryResponse,
    TransferResponse,
)

__all__ = [
    # Requests
    "RegisterEntityRequest",
    "MovementCreateRequest",
    "TransferItemRequest",
    "TransferCreateRequest",
    "QuantityUpdateRequest",
    "ReconcileRequest",
    "AdjustmentRequest",
    "StockTakeOpenRequest",
    "CountRequest",
    # Responses
    "HealthResponse",
    "ErrorResponse",
    "EntityResponse",
    "MovementResponse",
    "BalanceResponse",
    "StatementLineResponse",
    "StatementResponse",
    "ReconciliationResponse",
    "TransferResponse",
    "InventoryItemResponse",
    "StoreInventoryResponse",
    "ProductTotalResponse",
    "InventoryTotalsResponse",
    "StockTakeLineResponse",
    "StockTakeSummaryResponse",
    "StockTakeListItem",
    "StockTakeResponse",
    "StockTakePostResponse",
]
