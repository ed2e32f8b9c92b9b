"""
매출 캐시 갱신 스크립트
HTTP 없이 연도 매출 캐시를 갱신 (주기 실행용)

사용법: python scripts/refresh_revenue.py --year 2024 [--actor admin-id]
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import asyncio
from datetime import date

from dotenv import load_dotenv

from revshare.containers import Container
from revshare.config import settings
from revshare.logging_config import setup_logging


async def run_refresh(year: int, actor: str) -> bool:
    container = Container()
    container.init_resources()
    try:
        revenue_service = container.services.revenue_service()
        result = await revenue_service.refresh_revenue(year, actor_id=actor)
    finally:
        container.shutdown_resources()

    if result.success:
        print(f"✅ {year} 매출 캐시 갱신 완료: {result.message}")
    else:
        print(f"❌ {year} 매출 캐시 갱신 실패 (기존 캐시 유지): {result.error}")
    return result.success


def main():
    parser = argparse.ArgumentParser(description="Refresh the booking revenue cache")
    parser.add_argument("--year", type=int, default=date.today().year)
    parser.add_argument("--actor", default="system")
    args = parser.parse_args()

    load_dotenv("revshare/.env")
    setup_logging(settings.LOG_LEVEL)

    ok = asyncio.run(run_refresh(args.year, args.actor))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
