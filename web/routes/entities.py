"""
엔티티 API 라우트

계정/재고 엔티티 등록 및 조회.
"""

from fastapi import APIRouter, Depends, Query

from core.types import EntityKind
from service.ledger_service import LedgerService
from web.dependencies import get_ledger_service, parse_entity_ref
from web.models.requests import RegisterEntityRequest
from web.models.responses import EntityResponse

router = APIRouter(prefix="/api/entities", tags=["Entities"])


@router.post("", response_model=EntityResponse, status_code=201)
async def register_entity(
    request: RegisterEntityRequest,
    service: LedgerService = Depends(get_ledger_service),
):
    """엔티티 등록 (같은 부호 규칙이면 멱등, 다르면 409)"""
    ref = parse_entity_ref(request.entity_ref)
    record = await service.register_entity(ref, request.polarity, request.name)
    return EntityResponse.model_validate(record.to_dict())


@router.get("", response_model=list[EntityResponse])
async def list_entities(
    kind: EntityKind | None = Query(default=None),
    service: LedgerService = Depends(get_ledger_service),
):
    """엔티티 목록"""
    records = await service.list_entities(kind)
    return [EntityResponse.model_validate(r.to_dict()) for r in records]
