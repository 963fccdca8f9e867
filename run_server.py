#!/usr/bin/env python
"""
Server Entry Point

Starts the User Activity API.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn marketplace.main:app -c gunicorn.conf.py
"""

import argparse
import os
import subprocess

APP_PATH = "marketplace.main:app"


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        APP_PATH,
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["marketplace"],
        log_level="debug",
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    import uvicorn

    uvicorn.run(
        APP_PATH,
        host="0.0.0.0",
        port=port,
        workers=int(os.getenv("WORKERS", 4)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn(port: int):
    """Run with Gunicorn (recommended for production)."""
    env = dict(os.environ, BIND=f"0.0.0.0:{port}")
    subprocess.run(["gunicorn", APP_PATH, "-c", "gunicorn.conf.py"], env=env, check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Marketplace User Activity API Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with auto-reload"
    )
    parser.add_argument(
        "--gunicorn",
        action="store_true",
        help="Run with Gunicorn (production)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", 8000)),
        help="Port to run on (default: 8000)"
    )

    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn(args.port)
    else:
        run_prod_server(args.port)
