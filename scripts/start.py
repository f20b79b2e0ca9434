#!/usr/bin/env python3
"""
Production startup script.

1. Runs the release phase (tables + SUPERADMIN seed, see release.py)
2. Starts gunicorn (replaces this process via os.execvp)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_port(raw: str | None) -> int:
    """PORT from the environment; 8080 when unset. Raises ValueError when invalid."""
    raw = (raw or "").strip()
    if not raw:
        return 8080
    port = int(raw)
    if port < 1 or port > 65535:
        raise ValueError("Port out of range")
    return port


def gunicorn_argv(port: int, env: dict[str, str] | None = None) -> list[str]:
    env = os.environ if env is None else env
    workers = (env.get("WEB_CONCURRENCY") or "2").strip()
    log_level = (env.get("LOG_LEVEL") or "info").strip().lower()
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--preload",
        "--log-level", log_level,
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    raw_port = os.environ.get("PORT")
    if not (raw_port or "").strip():
        print("WARNING: PORT not set, using default 8080", flush=True)
    try:
        port = parse_port(raw_port)
    except ValueError:
        print(f"ERROR: Invalid PORT value '{raw_port}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== Starting gunicorn on 0.0.0.0:{port} ===", flush=True)
    # exec so gunicorn becomes PID 1 and receives signals directly
    os.execvp("gunicorn", gunicorn_argv(port))


if __name__ == "__main__":
    main()
