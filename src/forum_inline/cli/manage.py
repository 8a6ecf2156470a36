"""
Command-line interface for the forum inline editing service.

Usage:
    # Create the database tables
    forum-inline init-db

    # Recreate them from scratch
    forum-inline init-db --drop

    # Run the API server
    forum-inline serve --port 8000
"""

import argparse
import sys
from typing import List, Optional

import structlog

from forum_inline.config import settings
from forum_inline.logging_config import setup_logging
from forum_inline.storage.database import create_all_tables, drop_all_tables

# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)


# ============================================================================
# COMMANDS
# ============================================================================

def init_db(drop: bool = False) -> None:
    """Create the tables, dropping existing ones first when asked."""
    if drop:
        drop_all_tables()
    create_all_tables()
    print(f"Database ready: {settings.database_url}", file=sys.stderr)


def serve(host: str, port: int, reload: bool = False) -> None:
    import uvicorn

    uvicorn.run(
        "forum_inline.api.app:app",
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else settings.api_workers,
        log_level=settings.log_level.lower(),
    )


# ============================================================================
# MAIN CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forum-inline",
        description="Forum inline editing service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Settings come from environment variables or a .env file, e.g.:
  DATABASE_URL=sqlite:///./forum.db %(prog)s init-db
        """,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    init_parser = commands.add_parser("init-db", help="Create the database tables")
    init_parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables first (destroys all data)",
    )

    serve_parser = commands.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", type=str, default=settings.api_host, help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, default=settings.api_port, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        if args.command == "init-db":
            init_db(drop=args.drop)
        elif args.command == "serve":
            serve(args.host, args.port, reload=args.reload)
    except Exception as e:
        logger.error("cli_failed", command=args.command, error=str(e), exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
