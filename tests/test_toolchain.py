"""
Tests for Toolchain Checks — subprocess pass/fail, timeouts and missing tools.
"""

import sys

from rustguard.core import toolchain
from rustguard.core.toolchain import STANDARD_CHECKS, run_standard_checks, run_tool


def test_passing_tool_captures_output(tmp_path):
    result = run_tool("echo", [sys.executable, "-c", "print('hello')"], tmp_path)
    assert result.passed
    assert not result.skipped
    assert result.output.strip() == "hello"
    assert result.duration_ms >= 0


def test_failing_tool(tmp_path):
    script = "import sys; sys.stderr.write('boom'); sys.exit(3)"
    result = run_tool("fail", [sys.executable, "-c", script], tmp_path)
    assert not result.passed
    assert "boom" in result.output


def test_timeout(tmp_path):
    result = run_tool("slow", [sys.executable, "-c", "import time; time.sleep(10)"], tmp_path, timeout=1)
    assert not result.passed
    assert result.output == "Timed out after 1s"


def test_missing_tool_is_skipped(tmp_path):
    result = run_tool("ghost", ["definitely-not-a-real-binary-xyz"], tmp_path)
    assert result.skipped
    assert not result.passed
    assert "not installed" in result.output


def test_output_truncated(tmp_path):
    script = "print('x' * 10000)"
    result = run_tool("loud", [sys.executable, "-c", script], tmp_path)
    assert len(result.output) == toolchain.MAX_OUTPUT_CHARS


def test_standard_checks_without_cargo(tmp_path, monkeypatch):
    monkeypatch.setattr(toolchain.shutil, "which", lambda _name: None)
    results = run_standard_checks(tmp_path)
    assert [r.name for r in results] == [name for name, _ in STANDARD_CHECKS]
    assert all(r.skipped and not r.passed for r in results)


def test_standard_checks_filtered(tmp_path, monkeypatch):
    monkeypatch.setattr(toolchain.shutil, "which", lambda _name: None)
    results = run_standard_checks(tmp_path, names=["build", "fmt"])
    assert [r.name for r in results] == ["fmt", "build"]
