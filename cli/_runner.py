"""Process helper behind the quotes-dev and quotes-test entry points."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence


def run(cmd: Sequence[str]) -> None:
    """Run `cmd` in the foreground, then exit with its status."""
    result = subprocess.run(cmd)  # nosec
    raise SystemExit(result.returncode)
