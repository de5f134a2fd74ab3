"""Entry point for the block race monitor."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import yaml
from dotenv import load_dotenv

from block_race.config import RaceConfig, load_race_config
from block_race.feeds import BlockFeed, BlockTimestampAuthority
from block_race.reporter import LogReporter
from block_race.settlement import SettlementEngine

log = logging.getLogger("race.bot")

_LOG_FORMAT = "%(asctime)s │ %(name)-16s │ %(message)s"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Race Ethereum websocket providers for new blocks")
    parser.add_argument(
        "--config", type=Path, default=Path("config.yaml"), help="Path to YAML config file"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "debug", "info", "warning", "error"],
        help="Root log level (default: INFO)",
    )
    return parser.parse_args(argv)


class _ColorFormatter(logging.Formatter):
    """Dim DEBUG lines on the console for visual hierarchy."""
    _DIM = "\033[2m"
    _RESET = "\033[0m"

    def format(self, record):
        result = super().format(record)
        if record.levelno <= logging.DEBUG:
            return f"{self._DIM}{result}{self._RESET}"
        return result


def _setup_logging(level_str: str) -> None:
    level = getattr(logging, level_str.upper(), logging.INFO)
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt="%H:%M:%S")

    for h in logging.getLogger().handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            h.setFormatter(_ColorFormatter(fmt=_LOG_FORMAT, datefmt="%H:%M:%S"))

    log_dir = Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / f"block_race_{datetime.now():%Y-%m-%d_%H%M%S}.log")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.getLogger().addHandler(fh)

    for noisy in ("web3", "websockets", "urllib3", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _load_raw_config(path: Path) -> dict:
    if not path.exists():
        log.warning("CONFIG │ %s not found, using defaults", path)
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    load_dotenv()
    _setup_logging(args.log_level)

    cfg = load_race_config(_load_raw_config(args.config))
    log.info(
        "INIT contestants=%s primary=%s aggregate_every=%d",
        ", ".join(cfg.contestants), cfg.primary_provider, cfg.blocks_per_aggregate_print,
    )

    try:
        asyncio.run(_run_all(cfg))
    except KeyboardInterrupt:
        log.info("SHUTDOWN user interrupt")
        sys.exit(0)


async def _run_all(cfg: RaceConfig) -> None:
    """Run one feed per contestant until interrupted."""
    authority = BlockTimestampAuthority(cfg.primary_url)
    reporter = LogReporter()
    engine = SettlementEngine(
        cfg.contestants,
        authority,
        reporter,
        aggregate_every=cfg.blocks_per_aggregate_print,
    )
    feeds = [
        BlockFeed(name, url, engine.on_arrival, reconnect_delay=cfg.reconnect_delay_sec)
        for name, url in cfg.providers.items()
    ]

    try:
        await asyncio.gather(*(feed.run() for feed in feeds))
    finally:
        await authority.close()
        snapshot = engine.snapshot()
        if snapshot.block_count:
            log.info(
                "SHUTDOWN │ settled=%d failed=%d outstanding=%d",
                snapshot.block_count, engine.failed_count, len(engine.tracked_blocks()),
            )
            reporter.report_aggregates(snapshot)


if __name__ == "__main__":
    main()
