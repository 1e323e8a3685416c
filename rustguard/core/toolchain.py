"""
Toolchain Checks — Runs cargo formatter/linter/build/audit as black boxes.

Each tool runs in its own subprocess with a timeout. Only pass/fail and the
captured output are kept; nothing is parsed. A tool that is not installed
is reported as skipped instead of failing the run.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from rustguard.config import settings
from rustguard.models.run_models import ToolCheckResult

logger = logging.getLogger("rustguard.core.toolchain")

MAX_OUTPUT_CHARS = 4000

STANDARD_CHECKS: list[tuple[str, list[str]]] = [
    ("fmt", ["cargo", "fmt", "--check"]),
    ("clippy", ["cargo", "clippy", "--all-targets", "--", "-D", "warnings"]),
    ("build", ["cargo", "build"]),
    ("audit", ["cargo", "audit"]),
]


def run_tool(name: str, command: list[str], cwd: str | Path, timeout: int | None = None) -> ToolCheckResult:
    """Run one tool and capture stdout+stderr."""
    timeout = timeout or settings.tool_timeout
    if shutil.which(command[0]) is None:
        logger.info(f"Skipping {name}: '{command[0]}' not found on PATH")
        return ToolCheckResult(
            name=name, command=command, passed=False, skipped=True,
            output=f"{command[0]} not installed",
        )

    start = time.monotonic()
    try:
        proc = subprocess.run(
            command,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning(f"{name} exceeded {timeout}s timeout")
        return ToolCheckResult(
            name=name, command=command, passed=False,
            output=f"Timed out after {timeout}s", duration_ms=round(elapsed, 2),
        )
    except OSError as e:
        elapsed = (time.monotonic() - start) * 1000
        logger.warning(f"{name} could not start: {e}")
        return ToolCheckResult(
            name=name, command=command, passed=False, skipped=True,
            output=str(e), duration_ms=round(elapsed, 2),
        )

    elapsed = (time.monotonic() - start) * 1000
    output = (proc.stdout + proc.stderr)[-MAX_OUTPUT_CHARS:]
    passed = proc.returncode == 0
    logger.info(f"{name}: {'passed' if passed else 'failed'} in {elapsed:.0f}ms")
    return ToolCheckResult(
        name=name, command=command, passed=passed,
        output=output, duration_ms=round(elapsed, 2),
    )


def run_standard_checks(root: str | Path, names: list[str] | None = None) -> list[ToolCheckResult]:
    """Run the standard cargo checks in order, optionally filtered by name."""
    return [
        run_tool(name, command, root)
        for name, command in STANDARD_CHECKS
        if names is None or name in names
    ]
