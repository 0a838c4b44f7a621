import argparse
import asyncio
import json
import logging
import time

from composition.thread import create_simple_thread, format_thread, validate_thread
from services.config import load_config
from services.database import Database
from services.llm import OllamaClient
from services.logging import setup_logging
from workflows.release_pipeline import ReleasePipeline, format_result


async def run_pipeline(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    start_time = time.perf_counter()

    config = load_config(args.config)
    updates = {}
    if args.test_mode:
        updates["test_mode"] = True
    if args.post:
        updates["enable_posting"] = True
    if args.hours is not None:
        updates["hours_back"] = args.hours
    if updates:
        config = config.model_copy(update={"pipeline": config.pipeline.model_copy(update=updates)})

    logger.info(
        "Starting release radar run",
        extra={"test_mode": config.pipeline.test_mode, "enable_posting": config.pipeline.enable_posting},
    )

    pipeline = ReleasePipeline(config)
    result = await pipeline.run()
    print(format_result(result))

    end_time = time.perf_counter()
    logger.info(f"Total time: {end_time - start_time}")
    return 0 if result.success else 1


async def show_stats(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    db = Database(config.DATABASE_PATH)

    stats = await db.get_skip_reason_stats()
    stats["items_last_24h"] = await db.count_items_since(24)
    stats["threads_last_24h"] = await db.count_tweets_since(24)
    print(json.dumps(stats, indent=2, default=str))
    return 0


async def check_llm(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    client = OllamaClient(base_url=config.OLLAMA_BASE_URL, model=config.OLLAMA_MODEL, timeout=config.LLM_TIMEOUT)

    health = await client.health_check()
    print(json.dumps(health, indent=2))
    if not health["reachable"]:
        return 1
    return 0 if await client.test_connection() else 1


def preview_thread(args: argparse.Namespace) -> int:
    thread = create_simple_thread(args.vendor, args.product, args.version, args.url)
    print(format_thread(thread))
    validation = validate_thread(thread)
    for warning in validation["warnings"]:
        print(f"warning: {warning}")
    for error in validation["errors"]:
        print(f"error: {error}")
    return 0 if validation["is_valid"] else 1


def main() -> int:
    parser = argparse.ArgumentParser(description='Release Radar - AI release detection and thread posting')
    parser.add_argument('--config', default=None,
                        help='Path to config.yml (default: resources/config.yml)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command')

    run_parser = subparsers.add_parser('run', help='Run the full pipeline (default)')
    run_parser.add_argument('--test-mode', action='store_true',
                            help='Write threads to the output directory instead of posting')
    run_parser.add_argument('--post', action='store_true',
                            help='Enable posting of gated threads')
    run_parser.add_argument('--hours', type=int, default=None,
                            help='Lookback window in hours')

    subparsers.add_parser('stats', help='Show skip reason and posting statistics')
    subparsers.add_parser('check', help='Check that Ollama is reachable and the model responds')

    preview_parser = subparsers.add_parser('preview', help='Render a minimal draft thread')
    preview_parser.add_argument('vendor')
    preview_parser.add_argument('product')
    preview_parser.add_argument('--version', default=None)
    preview_parser.add_argument('--url', default=None)

    args = parser.parse_args()
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    if args.command == 'stats':
        return asyncio.run(show_stats(args))
    if args.command == 'check':
        return asyncio.run(check_llm(args))
    if args.command == 'preview':
        return preview_thread(args)

    if args.command is None:
        args = run_parser.parse_args([], namespace=args)
    return asyncio.run(run_pipeline(args))


if __name__ == "__main__":
    raise SystemExit(main())
