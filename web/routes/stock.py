"""
재고 API 라우트

매장 재고 현황, 매장 간 이동, 재고 수량 직접 수정.
"""

from fastapi import APIRouter, Depends, Query

from service.ledger_service import LedgerService
from web.dependencies import get_ledger_service
from web.models.requests import QuantityUpdateRequest, TransferCreateRequest
from web.models.responses import (
    InventoryTotalsResponse,
    ReconciliationResponse,
    StoreInventoryResponse,
    TransferResponse,
)

router = APIRouter(prefix="/api/stock", tags=["Stock"])


@router.get("/totals", response_model=InventoryTotalsResponse)
async def get_inventory_totals(
    as_of: int | None = Query(default=None, ge=0),
    service: LedgerService = Depends(get_ledger_service),
):
    """전 매장 상품별 재고 합계"""
    totals = await service.get_inventory_totals(as_of)
    return InventoryTotalsResponse.model_validate(totals.to_dict())


@router.get("/{store_id}/inventory", response_model=StoreInventoryResponse)
async def get_store_inventory(
    store_id: str,
    as_of: int | None = Query(default=None, ge=0),
    service: LedgerService = Depends(get_ledger_service),
):
    """매장 재고 현황 (as_of 이하 Movement 반영, 없으면 최신)"""
    inventory = await service.get_store_inventory(store_id, as_of)
    return StoreInventoryResponse.model_validate(inventory.to_dict())


@router.post("/transfers", response_model=TransferResponse, status_code=201)
async def record_transfer(
    request: TransferCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """매장 간 재고 이동

    출고 매장 재고가 부족하면 422 (상품별 요청/가용/부족 수량 포함).
    """
    result = await service.record_transfer(
        request.from_store,
        request.to_store,
        [(item.product_id, item.quantity) for item in request.items],
        reference=request.reference,
        memo=request.memo,
    )
    return TransferResponse.model_validate(result.to_dict())


@router.put("/{store_id}/{product_id}/quantity", response_model=ReconciliationResponse)
async def set_quantity(
    store_id: str,
    product_id: str,
    request: QuantityUpdateRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 수량 직접 수정 (차이만큼 QUANTITY_UPDATE 조정)"""
    rec = await service.set_quantity(product_id, store_id, request.quantity, memo=request.memo)
    return ReconciliationResponse.model_validate(rec.to_dict())
