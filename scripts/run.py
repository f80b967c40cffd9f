#!/usr/bin/env python3
"""
MediaVault Startup Script
"""

import argparse
import asyncio
import shutil
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def generate_env_file():
    """Generate .env file if it doesn't exist"""
    env_path = Path(__file__).parent.parent / ".env"
    env_example = Path(__file__).parent.parent / ".env.example"

    if not env_path.exists():
        if env_example.exists():
            shutil.copyfile(env_example, env_path)
            print("Generated .env file from .env.example")
        else:
            print("Warning: .env.example not found, using default configuration")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="MediaVault indexer")
    parser.add_argument(
        "--env-file", type=Path, help="Environment file to load before the default .env"
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Do not watch WATCH_DIRECTORY even if WATCH_ENABLED is set",
    )
    parser.add_argument(
        "--index",
        nargs="+",
        metavar="FILE",
        help="Index the given files, wait for the queue to drain and exit",
    )
    return parser.parse_args(argv)


async def main(args):
    """Run the indexer until a shutdown signal arrives"""
    if args.env_file:
        load_dotenv(args.env_file, override=True)
    else:
        generate_env_file()

    from mediavault.config import settings
    from mediavault.main import MediaVault

    if args.no_watch or args.index:
        settings.WATCH_ENABLED = False

    app = MediaVault(settings)
    print("Initializing database...")
    await app.start()
    print("Database initialized successfully.")

    try:
        if args.index:
            paths = [str(Path(f).resolve()) for f in args.index]
            for path, index_log in zip(paths, await app.index(*paths)):
                if index_log is None:
                    status = "skipped"
                else:
                    status = "failed" if index_log.failed else "indexed"
                print(f"  {status}: {path}")
            return

        print(f"""
    MediaVault indexer running

      Watch directory:   {settings.WATCH_DIRECTORY if settings.WATCH_ENABLED else "disabled"}
      Save directory:    {settings.SAVE_DIR}
      Quality levels:    {", ".join(level.name for level in settings.QUALITY_LEVELS)}
      TMDB lookups:      {"enabled" if settings.TMDB_API_KEY else "disabled"}

    Press CTRL+C to stop (the running job is finished first)
    """)

        # Handle shutdown signal
        shutdown_event = asyncio.Event()

        def handle_shutdown():
            print("\nShutting down...")
            shutdown_event.set()

        # Register signal handlers
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_shutdown)

        try:
            await shutdown_event.wait()
        finally:
            # Cleanup signal handlers
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
    finally:
        await app.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main(parse_args()))
    except KeyboardInterrupt:
        pass
