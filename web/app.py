"""
FastAPI 애플리케이션

라우터 등록, 업무 오류 → HTTP 상태 코드 매핑, 앱 생명주기 관리.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings
from core.ledger.errors import (
    AlreadyPostedError,
    ConcurrentAppendConflict,
    InsufficientStockError,
    InvalidMovementError,
    LedgerError,
    LineNotFoundError,
    PolarityConflictError,
    PolarityUndeterminedError,
    SessionDiscardedError,
    SessionNotFoundError,
    StorageUnavailable,
)
from core.logging import setup_logging
from service.ledger_service import LedgerService
from web.routes import entities, health, ledger, stock, stock_takes

logger = logging.getLogger(__name__)


# 업무 오류 → HTTP 상태 코드 (목록에 없으면 500)
ERROR_STATUS: dict[type[LedgerError], int] = {
    PolarityUndeterminedError: 404,
    SessionNotFoundError: 404,
    LineNotFoundError: 404,
    PolarityConflictError: 409,
    AlreadyPostedError: 409,
    SessionDiscardedError: 409,
    ConcurrentAppendConflict: 409,
    InvalidMovementError: 422,
    InsufficientStockError: 422,
    StorageUnavailable: 503,
}


def status_for(error: LedgerError) -> int:
    """예외 타입에 대응하는 HTTP 상태 코드"""
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 500


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """LedgerError → JSON 응답 (error_code + 조치 가능한 메시지)"""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            f"Ledger 오류: {exc}",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )
    else:
        logger.info(
            f"Ledger 요청 거부: {exc}",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )

    headers = {"Retry-After": "1"} if exc.retryable and status_code == 503 else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


def create_app(service: LedgerService | None = None) -> FastAPI:
    """FastAPI 앱 생성

    Args:
        service: 주입할 LedgerService (None이면 lifespan에서 SQLite로 생성)

    사용 예시:
    ```python
    # 테스트: Mock 저장소 기반 서비스 주입
    app = create_app(LedgerService(MockMovementStore(), MockEntityDirectory(), ...))
    ```
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """앱 생명주기 관리"""
        if service is not None:
            app.state.ledger_service = service
            yield
            return

        settings = get_settings()
        setup_logging("web", level=settings.logging.level)

        # 시작 시 - DB 연결 및 스키마 자동 초기화
        db = SQLiteAdapter(settings.db_path, busy_timeout_ms=settings.database.busy_timeout_ms)
        await db.connect()
        await init_schema(db)
        app.state.ledger_service = LedgerService.from_db(db, settings)
        logger.info("Web: LedgerService 초기화 완료", extra={"db_path": str(settings.db_path)})

        try:
            yield
        finally:
            # 종료 시 - 리소스 정리
            app.state.ledger_service = None
            await db.close()

    app = FastAPI(
        title="Trade Ledger API",
        description="잔액 replay 및 재고 실사 정합 API",
        version=health.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS 설정 (개발용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    # =========================================================================
    # API 라우터 등록
    # =========================================================================

    app.include_router(health.router)
    app.include_router(entities.router)
    app.include_router(ledger.router)
    app.include_router(stock.router)
    app.include_router(stock_takes.router)

    return app


app = create_app()
