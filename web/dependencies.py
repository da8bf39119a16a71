"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
LedgerService는 앱 lifespan에서 생성되어 app.state에 보관.
"""

from fastapi import HTTPException, Request

from core.types import EntityRef
from service.ledger_service import LedgerService


def get_ledger_service(request: Request) -> LedgerService:
    """LedgerService 반환

    Raises:
        HTTPException: 서비스가 초기화되지 않은 경우 503
    """
    service = getattr(request.app.state, "ledger_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ledger service is not ready")
    return service


def parse_entity_ref(entity_key: str) -> EntityRef:
    """경로/본문의 엔티티 키 파싱

    Raises:
        HTTPException: 형식 오류 시 422
    """
    try:
        return EntityRef.parse(entity_key)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
