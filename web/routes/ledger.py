"""
원장 API 라우트

잔액, 원장 내역, Movement 기록, 정합 미리보기/조정.
엔티티 키 형식: ACCOUNT:<account_id> | STOCK:<product_id>@<store_id>
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query

from core.ledger.movement import Movement
from service.ledger_service import LedgerService
from web.dependencies import get_ledger_service, parse_entity_ref
from web.models.requests import AdjustmentRequest, MovementCreateRequest, ReconcileRequest
from web.models.responses import (
    BalanceResponse,
    MovementResponse,
    ReconciliationResponse,
    StatementResponse,
)

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


@router.post("/movements", response_model=MovementResponse, status_code=201)
async def record_movement(
    request: MovementCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """Movement 기록

    expected_last_id 불일치 시 409 (잔액 재조회 후 재시도).
    """
    movement = Movement(
        entity_ref=parse_entity_ref(request.entity_ref),
        in_amount=request.in_amount,
        out_amount=request.out_amount,
        kind=request.kind,
        reference=request.reference,
        memo=request.memo,
    )
    stored = await service.record_movement(movement, request.expected_last_id)
    return MovementResponse.model_validate(stored.to_dict())


@router.get("/movements", response_model=list[MovementResponse])
async def find_movements(
    reference: str = Query(..., min_length=1),
    service: LedgerService = Depends(get_ledger_service),
):
    """참조값으로 Movement 조회 (이동/실사 전기 추적)"""
    movements = await service.find_movements(reference)
    return [MovementResponse.model_validate(m.to_dict()) for m in movements]


@router.get("/{entity_key}/balance", response_model=BalanceResponse)
async def get_balance(
    entity_key: str,
    as_of: int | None = Query(default=None, ge=0),
    service: LedgerService = Depends(get_ledger_service),
):
    """잔액 조회 (as_of 이하 Movement 반영, 없으면 최신)"""
    balance = await service.get_balance(parse_entity_ref(entity_key), as_of)
    return BalanceResponse.model_validate(balance.to_dict())


@router.get("/{entity_key}/statement", response_model=StatementResponse)
async def get_statement(
    entity_key: str,
    from_id: int | None = Query(default=None, ge=1),
    to_id: int | None = Query(default=None, ge=1),
    order: Literal["asc", "desc"] = Query(default="asc"),
    service: LedgerService = Depends(get_ledger_service),
):
    """원장 내역 (기초 잔액 + 행별 잔액 + 기말 잔액)

    order=desc는 표시 순서만 바꿈 (잔액 계산은 항상 id 오름차순).
    """
    statement = await service.get_statement(parse_entity_ref(entity_key), from_id, to_id)
    data = statement.to_dict()
    if order == "desc":
        data["lines"] = list(reversed(data["lines"]))
    return StatementResponse.model_validate(data)


@router.post("/{entity_key}/reconcile", response_model=ReconciliationResponse)
async def preview_reconciliation(
    entity_key: str,
    request: ReconcileRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """정합 미리보기 (기록하지 않음)"""
    rec = await service.reconcile(parse_entity_ref(entity_key), request.counted, request.kind)
    return ReconciliationResponse.model_validate(rec.to_dict())


@router.post("/{entity_key}/adjustments", response_model=ReconciliationResponse)
async def record_adjustment(
    entity_key: str,
    request: AdjustmentRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """잔액을 관측값에 맞추는 조정 기록 (차이가 없으면 기록 없음)"""
    rec = await service.adjust_to(
        parse_entity_ref(entity_key),
        request.counted,
        kind=request.kind,
        reference=request.reference,
        memo=request.memo,
    )
    return ReconciliationResponse.model_validate(rec.to_dict())
