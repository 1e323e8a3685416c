"""
Fatal error types. Everything else is recorded as a ScanIssue and reported.
"""

from __future__ import annotations


class RustguardError(Exception):
    """Base class for errors that abort a run."""


class InvalidRootError(RustguardError):
    """The scan root does not exist or is not a directory."""


class NoReadableFilesError(RustguardError):
    """Discovery found no readable Rust source files under the root."""


class ReportAlreadyBuiltError(RustguardError):
    """A ReportBuilder was asked to build a second report."""
