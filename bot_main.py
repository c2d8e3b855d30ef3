import argparse
import asyncio
import logging
import sys
from pathlib import Path

from bot.config import load_config
from bot.telegram_bot import run_bot
from tailfollow.errors import TailError


logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ship lines appended to a file to a Telegram chat")
    parser.add_argument("--config", type=Path, default=Path("config.telegram.yaml"), help="Path to shipper YAML config")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config = load_config(args.config)
    try:
        await run_bot(config)
    except (OSError, TailError) as exc:
        logger.error("Cannot ship %s: %s", config.source.path, exc)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
