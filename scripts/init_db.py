"""
원장 스키마 초기화

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --db data/ledger.db
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from core.config.loader import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

REQUIRED_TABLES = ["ledger_entity", "movement", "stock_take_session", "stock_take_line"]


async def verify_schema(db: SQLiteAdapter) -> bool:
    """필수 테이블 확인"""
    for table in REQUIRED_TABLES:
        if not await db.table_exists(table):
            logger.error(f"테이블 누락: {table}")
            return False
        logger.info(f"테이블 확인: {table} ✓")
    return True


async def main(db_path: Path) -> None:
    """스키마 생성 및 검증

    Args:
        db_path: DB 파일 경로
    """
    logger.info(f"스키마 초기화 시작: {db_path}")

    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)

        if not await verify_schema(db):
            raise RuntimeError("스키마 검증 실패")

    logger.info("스키마 초기화 완료 ✓")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="원장 스키마 초기화")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (기본: settings.yaml의 database.path)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.db or get_settings().db_path))
