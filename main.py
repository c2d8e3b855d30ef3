import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from tailfollow.config import FollowConfig, load_follow_config
from tailfollow.errors import TailError
from tailfollow.follower import follow


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Follow a file and print appended lines")
    parser.add_argument("path", type=Path, help="File to follow")
    parser.add_argument("--config", type=Path, default=None, help="Path to YAML config with a 'follow' section")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the file to appear (0 = fail at once)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> FollowConfig:
    config = load_follow_config(args.config) if args.config else FollowConfig()
    if args.timeout is not None:
        config = FollowConfig(timeout=args.timeout, retry_interval=config.retry_interval, encoding=config.encoding)
    return config


async def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    config = build_config(args)
    try:
        follower = await follow(str(args.path), config)
    except (OSError, TailError) as exc:
        logger.error("Cannot follow %s: %s", args.path, exc)
        return 1
    async with follower:
        try:
            async for line in follower:
                print(line, flush=True)
        except TailError as exc:
            logger.error("Follow of %s failed: %s", args.path, exc)
            return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
