#!/usr/bin/env python3
"""
Usersvc -- Minimal user management API with bcrypt-hashed passwords.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload
  python main.py --store memory

Environment variables (or .env):
  ACCOUNT_STORE     "sql" (default) or "memory"
  DATABASE_URL      SQLAlchemy URL, e.g. postgresql://user:pw@host/db
  BCRYPT_ROUNDS     bcrypt work factor, 4..31 (default 12)
  ALLOWED_ORIGINS   JSON list of CORS origins
  RATE_LIMIT        default per-IP limit, e.g. "100 per 15 minutes"
"""

import argparse
import os

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Run the Usersvc API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Bind port (default: {settings.port})")
    parser.add_argument(
        "--store",
        choices=["sql", "memory"],
        help="Override ACCOUNT_STORE for this run",
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    if args.store:
        # Settings is read again by the app process; the env var is the handoff.
        os.environ["ACCOUNT_STORE"] = args.store
        get_settings.cache_clear()

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
