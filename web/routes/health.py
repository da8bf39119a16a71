"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

from fastapi import APIRouter, Request

from core.utils.timezone import utc_now
from web.models.responses import HealthResponse

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status(ok | starting), version, timestamp
    """
    ready = getattr(request.app.state, "ledger_service", None) is not None
    return HealthResponse(
        status="ok" if ready else "starting",
        version=API_VERSION,
        timestamp=utc_now(),
    )
