"""
RustGuard Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Every value has a default, so the scanner runs without any configuration.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Rule Thresholds ──
    max_file_lines: int = Field(
        default=300, description="Physical line count above which a file is flagged"
    )
    max_function_lines: int = Field(
        default=50, description="Line span above which a function is flagged"
    )
    max_line_length: int = Field(
        default=100, description="Character count above which a line is flagged"
    )

    # ── Scanning ──
    max_file_size_bytes: int = Field(
        default=2_000_000, description="Files larger than this are skipped with an I/O issue"
    )
    scan_workers: int = Field(
        default=4, description="Thread pool size for per-file rule evaluation"
    )
    excluded_dirs: list[str] = Field(
        default=["target", ".git", "node_modules"],
        description="Directory names never descended into during discovery",
    )

    # ── Semantic Analysis ──
    context_window_radius: int = Field(
        default=5, description="Lines captured either side of a violation"
    )
    deep_analysis_cap: int = Field(
        default=100,
        description="Maximum violations per run that receive deep semantic analysis",
    )
    excessive_unwrap_threshold: int = Field(
        default=10, description="Unwrap count above which 'Excessive Unwrapping' is reported"
    )
    panic_heavy_threshold: int = Field(
        default=20, description="Unwrap count above which the codebase is classed panic-heavy"
    )
    pattern_sample_files: int = Field(
        default=10, description="Number of files sampled for code-pattern detection"
    )

    # ── Reports ──
    report_dir: str = Field(
        default=".rustguard/ai-analysis",
        description="Artifact directory, relative to the scanned root",
    )
    instruction_preview_size: int = Field(
        default=3, description="Entries previewed per complexity group in the instructions"
    )

    # ── External Tools ──
    tool_timeout: int = Field(
        default=300, description="Timeout for cargo subprocess invocations in seconds"
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )
    max_request_files: int = Field(
        default=200, description="Maximum files accepted in one API request"
    )

    # ── Audit / Logging ──
    audit_log_path: str = Field(
        default=".rustguard/audit.jsonl",
        description="JSON-lines audit log, relative to the scanned root",
    )
    log_level: str = Field(default="INFO", description="Root log level for entry points")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance imported by other modules
settings = Settings()
