"""
전체 엔티티 잔액 검증

등록된 모든 엔티티를 처음부터 replay하여 잔액 출력.
replay 오류(정렬 위반 등)가 있으면 종료 코드 1.

사용법:
    python -m scripts.check_balances
    python -m scripts.check_balances --kind STOCK
"""

import argparse
import asyncio
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import get_settings
from core.ledger.directory import EntityDirectory
from core.ledger.errors import LedgerError
from core.ledger.replayer import replay
from core.ledger.store import MovementStore
from core.logging import setup_logging


async def main(db_path: Path, kind: str | None) -> int:
    """잔액 검증

    Returns:
        종료 코드 (0: 정상, 1: replay 오류 존재)
    """
    failures = 0

    async with SQLiteAdapter(db_path, readonly=True) as db:
        directory = EntityDirectory(db)
        store = MovementStore(db)
        records = await directory.list_entities(kind)

        print("=" * 72)
        print(f"=== 잔액 검증: {db_path} ({len(records)}개 엔티티) ===")
        print("=" * 72)

        for record in records:
            movements = await store.query(record.entity_ref)
            try:
                result = replay(movements, record.polarity)
            except LedgerError as e:
                failures += 1
                print(f"  {record.entity_ref.key:40} | ERROR  | {e}")
                continue

            print(
                f"  {record.entity_ref.key:40} | {record.polarity.value:13} | "
                f"{len(movements):6}건 | {result.final_balance:>16}"
            )

    print()
    if failures:
        print(f"replay 오류 {failures}건")
        return 1
    print("전체 replay 정상 ✓")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="전체 엔티티 잔액 검증")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 파일 경로 (기본: settings.yaml의 database.path)",
    )
    parser.add_argument(
        "--kind",
        choices=["ACCOUNT", "STOCK"],
        default=None,
        help="엔티티 종류 필터",
    )
    args = parser.parse_args()

    settings = get_settings()
    setup_logging("scripts", level=settings.logging.level)
    sys.exit(asyncio.run(main(args.db or settings.db_path, args.kind)))
