"""CLI wrapper: Start the Quotes API with auto-reload."""

from __future__ import annotations

import sys

from cli._runner import run

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = "8000"


def main() -> None:
    from app.core.config import settings

    run(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "app.main:app",
            "--reload",
            "--host",
            DEFAULT_HOST,
            "--port",
            DEFAULT_PORT,
            "--log-level",
            settings.app_log_level.lower(),
            *sys.argv[1:],
        ]
    )
