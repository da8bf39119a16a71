"""
재고 실사 API 라우트

개시 → 수량 입력 → 전기 / 폐기.
전기된 세션은 변경 불가 (정정은 /api/ledger/{entity}/adjustments).
"""

from fastapi import APIRouter, Depends, Query

from core.types import StockTakeStatus
from service.ledger_service import LedgerService
from web.dependencies import get_ledger_service
from web.models.requests import CountRequest, StockTakeOpenRequest
from web.models.responses import (
    StockTakeLineResponse,
    StockTakeListItem,
    StockTakePostResponse,
    StockTakeResponse,
)

router = APIRouter(prefix="/api/stock-takes", tags=["Stock Take"])


@router.post("", response_model=StockTakeResponse, status_code=201)
async def open_stock_take(
    request: StockTakeOpenRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 실사 개시 (현재 재고 스냅샷 고정)"""
    session = await service.open_stock_take(request.store_id, request.product_ids)
    return StockTakeResponse.model_validate(session.to_dict())


@router.get("", response_model=list[StockTakeListItem])
async def list_stock_takes(
    store_id: str | None = Query(default=None),
    status: StockTakeStatus | None = Query(default=None),
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 실사 목록 (최근 개시 순)"""
    sessions = await service.list_stock_takes(store_id, status)
    return [StockTakeListItem.model_validate(s) for s in sessions]


@router.get("/{session_id}", response_model=StockTakeResponse)
async def get_stock_take(
    session_id: str,
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 실사 조회 (항목 + 요약)"""
    session = await service.get_stock_take(session_id)
    return StockTakeResponse.model_validate(session.to_dict())


@router.put("/{session_id}/counts/{product_id}", response_model=StockTakeLineResponse)
async def record_count(
    session_id: str,
    product_id: str,
    request: CountRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """실사 수량 입력 (DRAFT만, 전기/폐기 후 409)"""
    line = await service.record_count(session_id, product_id, request.counted)
    return StockTakeLineResponse.model_validate(line.to_dict())


@router.post("/{session_id}/post", response_model=StockTakePostResponse)
async def post_stock_take(
    session_id: str,
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 실사 전기 (조정 Movement + POSTED, 두 번째 호출은 409)"""
    result = await service.post_stock_take(session_id)
    return StockTakePostResponse.model_validate(result.to_dict())


@router.post("/{session_id}/discard", response_model=StockTakeResponse)
async def discard_stock_take(
    session_id: str,
    service: LedgerService = Depends(get_ledger_service),
):
    """재고 실사 폐기 (Movement 없음)"""
    session = await service.discard_stock_take(session_id)
    return StockTakeResponse.model_validate(session.to_dict())
