"""
Audit Logger — Structured JSON-lines audit trail.

Records every pipeline run with: timestamp, run_id, root, command, files
scanned, violations found, fixes applied and skipped, analyses, duration and
the fatal error (if any). A failed audit write is logged and never fails the run.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pydantic import ValidationError

from rustguard.config import settings
from rustguard.models.run_models import AuditEntry

logger = logging.getLogger("rustguard.audit")


class AuditLogger:
    """Appends AuditEntry records to a JSON-lines file and reads them back."""

    def __init__(self, log_path: str | Path | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry) -> AuditEntry:
        """Stamp and append one entry. Returns the stamped entry."""
        stamped = entry.model_copy(
            update={"timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())}
        )
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(stamped.model_dump_json() + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log {self.log_path}: {e}")
        return stamped

    def read_recent(self, count: int = 50, command: str | None = None) -> list[AuditEntry]:
        """Most recent *count* entries, oldest first, optionally for one command."""
        if not self.log_path.exists():
            return []

        entries: list[AuditEntry] = []
        try:
            with open(self.log_path, encoding="utf-8") as f:
                for number, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entry = AuditEntry.model_validate_json(line)
                    except ValidationError:
                        logger.debug(f"{self.log_path}:{number}: unreadable audit record")
                        continue
                    if command is None or entry.command == command:
                        entries.append(entry)
        except OSError as e:
            logger.warning(f"Cannot read audit log {self.log_path}: {e}")
            return []

        return entries[-count:] if count > 0 else []
