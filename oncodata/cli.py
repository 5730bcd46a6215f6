# 命令行入口
"""
oncodata 命令行工具

    oncodata run [--source fda]     立即抓取并输出各数据源汇总
    oncodata runs [--limit 20]      查看最近的抓取日志
    oncodata serve                  启动管理 API
"""

import argparse
import asyncio
import json
import sys

from oncodata.config import Settings, get_settings
from oncodata.ingestion import UnknownSourceError, build_scraping_service
from oncodata.storage import Neo4jStore, create_store, init_neo4j_schema
from oncodata.utils import get_logger, setup_logging

logger = get_logger(__name__)


async def _run_scraping(settings: Settings, source: str | None) -> list[dict]:
    store = create_store(settings)
    await store.connect()
    if isinstance(store, Neo4jStore):
        await init_neo4j_schema(store)
    
    service = build_scraping_service(store, settings.scraper)
    try:
        if source:
            results = [await service.run_source(source)]
        else:
            results = await service.run_all_scraping()
        return [r.model_dump(mode="json") for r in results]
    finally:
        await service.close()
        await store.close()


async def _list_runs(settings: Settings, limit: int, source: str | None) -> list[dict]:
    store = create_store(settings)
    await store.connect()
    service = build_scraping_service(store, settings.scraper)
    try:
        runs = await service.recent_runs(limit=limit, source=source)
        return [run.model_dump(mode="json") for run in runs]
    finally:
        await service.close()
        await store.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="oncodata", description="Oncology data ingestion")
    parser.add_argument("--config", type=str, help="配置文件路径")
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    run_parser = subparsers.add_parser("run", help="立即运行数据抓取")
    run_parser.add_argument("--source", type=str, help="只运行指定数据源")
    
    runs_parser = subparsers.add_parser("runs", help="查看最近的抓取日志")
    runs_parser.add_argument("--limit", type=int, default=20)
    runs_parser.add_argument("--source", type=str)
    
    subparsers.add_parser("serve", help="启动管理 API")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    
    # 加载配置
    settings = Settings.from_yaml(args.config) if args.config else get_settings()
    setup_logging(settings.log_level, settings.log_format)
    
    if args.command == "serve":
        from oncodata.api.main import run
        run(settings)
        return 0
    
    try:
        if args.command == "run":
            output = asyncio.run(_run_scraping(settings, args.source))
        else:
            output = asyncio.run(_list_runs(settings, args.limit, args.source))
    except UnknownSourceError as e:
        logger.error(str(e))
        return 2
    
    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
