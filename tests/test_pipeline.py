"""
Tests for the Pipeline — end-to-end runs over a crate on disk, selection
filters, exit codes and the audit trail.
"""

import json

import pytest

from rustguard.audit.logger import AuditLogger
from rustguard.core.errors import InvalidRootError, NoReadableFilesError
from rustguard.engine.pipeline import Pipeline, select_violations
from rustguard.engine.report_writer import load_report
from rustguard.models.rule_models import ViolationKind
from rustguard.models.run_models import AuditEntry


def test_validate_run(crate_root):
    run = Pipeline().run(crate_root, analyze=False, write_artifacts=False, command="validate")
    assert run.scan.total == 6
    assert run.fix_summary is None
    assert run.report is None
    assert run.artifacts == []
    assert run.exit_code == 1
    assert not (crate_root / ".rustguard" / "ai-analysis").exists()


def test_analysis_run_writes_artifacts(crate_root):
    run = Pipeline().run(crate_root, command="analyze")
    assert len(run.artifacts) == 2
    json_path = next(p for p in run.artifacts if p.endswith(".json"))
    report = load_report(json_path)
    assert report == run.report
    assert report.metadata.total_violations == 6
    assert report.metadata.project_path == str(crate_root)


def test_fix_run_analyses_only_deferred(crate_root):
    run = Pipeline().run(crate_root, fix=True, write_artifacts=False, command="fix")
    assert run.fix_summary.fixed == 2
    assert [a.violation.line for a in run.report.violation_analyses] == [28, 31, 37, 43]
    # The total counts everything the scan found, not just what was analysed
    assert run.report.metadata.total_violations == run.scan.total == 6
    assert run.exit_code == 1


def test_dry_run_exit_code_counts_everything(crate_root):
    run = Pipeline().run(crate_root, fix=True, dry_run=True, analyze=False)
    assert run.fix_summary.fixed == 2
    assert run.exit_code == 1


def test_clean_crate_exits_zero(tmp_path, clean_rust_code):
    (tmp_path / "lib.rs").write_text(clean_rust_code)
    run = Pipeline().run(tmp_path, fix=True)
    assert run.scan.total == 0
    assert run.exit_code == 0
    assert run.report.violation_analyses == []


def test_fully_fixed_crate_exits_zero(tmp_path, result_fn_source):
    (tmp_path / "lib.rs").write_text(result_fn_source)
    run = Pipeline().run(tmp_path, fix=True, analyze=False)
    assert run.fix_summary.fixed == 1
    assert run.exit_code == 0


def test_only_and_limit(crate_root):
    run = Pipeline().run(
        crate_root,
        fix=True,
        dry_run=True,
        analyze=False,
        only=[ViolationKind.UNWRAP_IN_PRODUCTION],
        limit=1,
    )
    assert [o.violation.line for o in run.fix_summary.outcomes] == [14]


def test_select_violations(crate_root):
    violations = Pipeline().run(crate_root, analyze=False).scan.violations
    assert [v.line for v in select_violations(violations, skip=[ViolationKind.UNWRAP_IN_PRODUCTION])] == [28, 31]
    assert select_violations(violations, limit=0) == []
    assert select_violations(violations) == violations


def test_invalid_root_raises_without_touching_disk(tmp_path):
    missing = tmp_path / "missing"
    with pytest.raises(InvalidRootError):
        Pipeline().run(missing)
    assert not missing.exists()


def test_fatal_error_is_audited(tmp_path):
    audit = AuditLogger(tmp_path / "audit.jsonl")
    with pytest.raises(NoReadableFilesError):
        Pipeline(audit_logger=audit).run(tmp_path, command="validate")
    (entry,) = audit.read_recent()
    assert entry.fatal_error
    assert entry.command == "validate"


def test_successful_run_is_audited(crate_root):
    Pipeline().run(crate_root, fix=True, dry_run=True, analyze=False, command="fix")
    entries = AuditLogger(crate_root / ".rustguard" / "audit.jsonl").read_recent()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.violations_found == 6
    assert entry.fixed == 2
    assert entry.skipped == 4
    assert entry.files_scanned == 3
    assert entry.timestamp.endswith("Z")


# ── Audit logger ──


def test_audit_read_recent_filters_and_limits(tmp_path):
    audit = AuditLogger(tmp_path / "nested" / "audit.jsonl")
    for i in range(5):
        audit.log(AuditEntry(run_id=f"r{i}", root="/crate", command="fix" if i % 2 else "validate"))

    assert [e.run_id for e in audit.read_recent(2)] == ["r3", "r4"]
    assert [e.run_id for e in audit.read_recent(command="fix")] == ["r1", "r3"]
    assert audit.read_recent(0) == []


def test_audit_skips_malformed_lines(tmp_path):
    path = tmp_path / "audit.jsonl"
    good = AuditEntry(run_id="ok", root="/crate", command="validate")
    path.write_text("not json\n" + json.dumps({"unexpected": 1}) + "\n" + good.model_dump_json() + "\n")
    assert [e.run_id for e in AuditLogger(path).read_recent()] == ["ok"]


def test_audit_missing_file(tmp_path):
    assert AuditLogger(tmp_path / "none.jsonl").read_recent() == []


def test_audit_write_failure_does_not_raise(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    audit = AuditLogger(blocker / "audit.jsonl")
    entry = audit.log(AuditEntry(run_id="r", root="/crate", command="validate"))
    assert entry.timestamp
