"""Command-line entry point for the game requirements engine.

This module provides:
- Command-line argument parsing with one sub-command per operation
- Application initialization and dependency injection
- Graceful shutdown handling for long batch runs
"""

import argparse
import asyncio
import json
import signal
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any

import structlog

from .models import AppConfig, GameRef, UserHardwareProfile
from .services.adapters import CatalogAdapter, FallbackAdapter, SourceAdapter
from .services.backfill import BackfillStore, RequirementsBackfillJob
from .services.cache import FileRequirementsCache
from .services.catalog import JsonCatalog
from .services.compatibility import CompatibilityService
from .services.config import ConfigurationService
from .services.errors import AppError, ValidationError, get_error_service
from .services.fallback import FallbackTable
from .services.filesystem import FileSystemService
from .services.http_client import HttpClientService
from .services.logging import setup_logging
from .services.parser import parse_requirement_text, size_to_gb
from .services.providers import RawgProvider, SteamProvider
from .services.resolver import RequirementsResolver

log = structlog.stdlib.get_logger()

VERSION = "0.1.0"


class ApplicationContext:
    """Container for application services and state.

    Services are created lazily so that a command only builds what it uses.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path: Path | None = config_path

        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._http_client: HttpClientService | None = None
        self._filesystem: FileSystemService | None = None
        self._cache: FileRequirementsCache | None = None
        self._fallback_table: FallbackTable | None = None
        self._resolver: RequirementsResolver | None = None
        self._backfill_job: RequirementsBackfillJob | None = None

        self._shutdown_requested: bool = False

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
                rate_limit_delay=self.config.request_delay,
                user_agent=self.config.user_agent,
            )
        return self._http_client

    @property
    def filesystem(self) -> FileSystemService:
        if self._filesystem is None:
            self._filesystem = FileSystemService()
        return self._filesystem

    @property
    def cache(self) -> FileRequirementsCache:
        if self._cache is None:
            self._cache = FileRequirementsCache(
                cache_dir=self.config.cache_dir,
                ttl=timedelta(hours=self.config.cache_ttl_hours),
                filesystem=self.filesystem,
            )
        return self._cache

    @property
    def fallback_table(self) -> FallbackTable:
        if self._fallback_table is None:
            self._fallback_table = FallbackTable(self.config.fallback_path, filesystem=self.filesystem)
        return self._fallback_table

    @property
    def resolver(self) -> RequirementsResolver:
        if self._resolver is None:
            adapters: list[SourceAdapter] = [
                CatalogAdapter(SteamProvider(self.http_client), use_known_platform_id=True),
            ]
            if self.config.enable_third_party and self.config.rawg_api_key:
                adapters.append(CatalogAdapter(RawgProvider(self.http_client, self.config.rawg_api_key)))
            else:
                log.debug("Third-party catalog disabled")
            self._resolver = RequirementsResolver(
                adapters=adapters,
                cache=self.cache,
                fallback=FallbackAdapter(self.fallback_table),
            )
        return self._resolver

    def backfill_job(self, catalog: JsonCatalog, results_path: Path, record_fallback: bool) -> RequirementsBackfillJob:
        self._backfill_job = RequirementsBackfillJob(
            catalog=catalog,
            resolver=self.resolver,
            store=BackfillStore(results_path, filesystem=self.filesystem),
            batch_size=self.config.batch_size,
            item_delay=self.config.item_delay,
            batch_delay=self.config.batch_delay,
            fallback_table=self.fallback_table if record_fallback else None,
        )
        return self._backfill_job

    def request_shutdown(self) -> None:
        """Request graceful shutdown; a running batch stops after its current game."""
        self._shutdown_requested = True
        if self._backfill_job is not None:
            self._backfill_job.cancel()
        log.info("Shutdown requested")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def cleanup(self) -> None:
        if self._http_client is not None:
            await self._http_client.close()
        log.debug("Application cleanup complete")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamereqs",
        description="Normalize PC game requirements and score hardware compatibility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gamereqs parse "Processor: Intel Core i5<br>Memory: 8 GB RAM"
  gamereqs resolve --id 42 --name "Hades"
  gamereqs backfill data/games.json
  gamereqs check data/games.json --cpu "Ryzen 5 3600" --gpu "GTX 1660" --ram 16 --storage 500 --os "Windows 10"
        """,
    )
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/game-requirements/config.json)",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from configuration)",
    )
    _ = parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")

    commands = parser.add_subparsers(dest="command", required=True)

    parse_cmd = commands.add_parser("parse", help="Parse a requirement text block")
    _ = parse_cmd.add_argument("text", nargs="?", help="Requirement text or HTML")
    _ = parse_cmd.add_argument("--file", type=Path, help="Read the text from a file instead")

    resolve_cmd = commands.add_parser("resolve", help="Resolve requirements for one game")
    _ = resolve_cmd.add_argument("--id", dest="game_id", required=True, help="Stable game identifier")
    _ = resolve_cmd.add_argument("--name", help="Display name (looked up in --catalog when omitted)")
    _ = resolve_cmd.add_argument("--catalog", type=Path, help="Catalog JSON to read the game from")
    _ = resolve_cmd.add_argument("--category", default="", help="Catalog category, e.g. online")
    _ = resolve_cmd.add_argument("--size", help="Declared download size, e.g. '12.5 GB'")
    _ = resolve_cmd.add_argument("--platform-id", help="Known Steam app id")
    _ = resolve_cmd.add_argument("--force", action="store_true", help="Skip the cache read")

    backfill_cmd = commands.add_parser("backfill", help="Fill requirements for catalog games that lack them")
    _ = backfill_cmd.add_argument("catalog", type=Path, help="Catalog JSON file")
    _ = backfill_cmd.add_argument("--category", help="Only this catalog section or category")
    _ = backfill_cmd.add_argument("--results", type=Path, help="Results file (default: next to the cache)")
    _ = backfill_cmd.add_argument(
        "--record-fallback", action="store_true", help="Add live results to the fallback table"
    )

    check_cmd = commands.add_parser("check", help="Score a hardware profile against catalog games")
    _ = check_cmd.add_argument("catalog", type=Path, help="Catalog JSON file")
    _ = check_cmd.add_argument("--profile", type=Path, help="Hardware profile JSON {cpu, gpu, ramGB, storageGB, os}")
    _ = check_cmd.add_argument("--cpu", default="")
    _ = check_cmd.add_argument("--gpu", default="")
    _ = check_cmd.add_argument("--ram", type=float, default=0.0, help="RAM in GB")
    _ = check_cmd.add_argument("--storage", type=float, default=0.0, help="Free storage in GB")
    _ = check_cmd.add_argument("--os", default="")
    _ = check_cmd.add_argument("--game-id", action="append", dest="game_ids", help="Limit to these ids")
    _ = check_cmd.add_argument("--category", help="Only this catalog section or category")
    _ = check_cmd.add_argument("--weights", help='Weight overrides as JSON, e.g. \'{"gpu": 0.4}\'')

    merge_cmd = commands.add_parser("merge-fallback", help="Fill missing catalog fields from the fallback table")
    _ = merge_cmd.add_argument("catalog", type=Path, help="Catalog JSON file")
    _ = merge_cmd.add_argument("--category", help="Only this catalog section or category")

    return parser


def emit(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def cmd_parse(context: ApplicationContext, args: argparse.Namespace) -> int:
    _ = context
    if args.file is not None:
        text = args.file.read_text(encoding="utf-8")
    elif args.text is not None:
        text = args.text
    else:
        text = sys.stdin.read()
    emit(parse_requirement_text(text).to_dict())
    return 0


async def cmd_resolve(context: ApplicationContext, args: argparse.Namespace) -> int:
    game: GameRef | None = None
    if args.catalog is not None:
        game = await JsonCatalog(args.catalog, filesystem=context.filesystem).find(args.game_id)
        if game is None:
            raise ValidationError(f"Game {args.game_id} is not in the catalog", field="id", value=args.game_id)
    else:
        game = GameRef(
            id=args.game_id,
            name=args.name or "",
            category=args.category,
            declared_size_gb=size_to_gb(args.size),
            known_platform_id=args.platform_id,
        )

    entry = await context.resolver.resolve(game, force_fetch=args.force)
    output = entry.to_dict()
    output["source"] = entry.effective_source.value
    output["gameId"] = game.id
    if entry.failures:
        output["failures"] = list(entry.failures)
    emit(output)
    return 0


async def cmd_backfill(context: ApplicationContext, args: argparse.Namespace) -> int:
    results_path = args.results or context.config.cache_dir.parent / "backfill.json"
    catalog = JsonCatalog(args.catalog, filesystem=context.filesystem)
    job = context.backfill_job(catalog, results_path, args.record_fallback)
    progress = await job.run(args.category)
    emit({
        "processed": progress.games_processed,
        "total": progress.total_games,
        "updated": progress.games_updated,
        "failed": progress.games_failed,
        "skipped": progress.games_skipped,
        "errors": progress.errors,
        "cancelled": context.shutdown_requested,
        "results": str(results_path),
    })
    return 0


async def cmd_check(context: ApplicationContext, args: argparse.Namespace) -> int:
    if args.profile is not None:
        profile = UserHardwareProfile.from_dict(await context.filesystem.load_json(args.profile))
    else:
        profile = UserHardwareProfile(
            cpu=args.cpu, gpu=args.gpu, ram_gb=args.ram, storage_gb=args.storage, os=args.os
        )

    weights = None
    if args.weights:
        try:
            weights = json.loads(args.weights)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid weights: {e}", field="weights", value=args.weights) from e
        if not isinstance(weights, dict):
            raise ValidationError("Weights must be a JSON object", field="weights", value=args.weights)

    games = await JsonCatalog(args.catalog, filesystem=context.filesystem).entries(args.category)
    if args.game_ids:
        wanted = set(args.game_ids)
        games = [game for game in games if game.id in wanted]

    reports = await CompatibilityService(context.resolver).check(profile, games, weights)
    emit([report.to_dict() for report in reports])
    return 0


async def cmd_merge_fallback(context: ApplicationContext, args: argparse.Namespace) -> int:
    table = context.fallback_table
    await table.ensure_loaded()
    games = await JsonCatalog(args.catalog, filesystem=context.filesystem).entries(args.category)

    merged = []
    for game in games:
        filled = table.backfill(game.name, game.requirements)
        if filled is not None and filled != game.requirements:
            merged.append({"id": game.id, "name": game.name, "requirements": filled.to_dict()})

    log.info("Fallback merge complete", games=len(games), merged=len(merged))
    emit(merged)
    return 0


COMMANDS = {
    "parse": cmd_parse,
    "resolve": cmd_resolve,
    "backfill": cmd_backfill,
    "check": cmd_check,
    "merge-fallback": cmd_merge_fallback,
}


async def run_command(context: ApplicationContext, args: argparse.Namespace) -> int:
    try:
        return await COMMANDS[args.command](context, args)
    finally:
        await context.cleanup()


def setup_signal_handlers(context: ApplicationContext) -> None:
    def signal_handler(signum: int, frame: object) -> None:
        _ = frame
        log.info("Received signal", signal=signal.Signals(signum).name)
        context.request_shutdown()

    _ = signal.signal(signal.SIGTERM, signal_handler)
    log.debug("Signal handlers registered")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the command line."""
    args = build_parser().parse_args(argv)
    context = ApplicationContext(config_path=args.config)

    # stdout carries command output only
    _ = setup_logging(log_level=args.log_level or "INFO", log_dir=args.log_dir, quiet=True)
    if args.log_level is None and context.config.log_level != "INFO":
        _ = setup_logging(log_level=context.config.log_level, log_dir=args.log_dir, quiet=True)
    log.debug("Starting gamereqs", version=VERSION, command=args.command)

    setup_signal_handlers(context)

    try:
        exit_code = asyncio.run(run_command(context, args))
    except KeyboardInterrupt:
        log.info("Interrupted by user")
        exit_code = 130
    except (AppError, OSError, ValueError) as e:
        friendly = get_error_service().handle_error(e, operation=args.command, component="cli")
        print(get_error_service().create_user_message(friendly), file=sys.stderr)
        exit_code = 1

    log.debug("Exiting", exit_code=exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
