"""Tests for sdd.sync scanner, matcher and reporter."""

import json

import pytest

from sdd.sync.matcher import SyncMatcher, sync_rate
from sdd.sync.reporter import SyncReporter, check_threshold
from sdd.sync.scanner import (
    CodeScanner,
    SpecRequirementParser,
    TestScanner,
    extract_requirements,
    is_test_file,
)

LOGIN_SPEC = """---
id: login
---

# Login

### REQ-001: Sign in
The system SHALL accept email and password.

### REQ-002: Lockout
The system MUST lock the account after 5 failures.

### REQ-003: Audit
The system SHOULD log every attempt.
"""


@pytest.fixture
def project(tmp_path):
    spec_dir = tmp_path / ".sdd" / "specs" / "auth" / "login"
    spec_dir.mkdir(parents=True)
    (spec_dir / "spec.md").write_text(LOGIN_SPEC)

    src = tmp_path / "src"
    src.mkdir()
    (src / "auth.py").write_text("# @spec REQ-001\ndef login():\n    pass\n")
    (src / "legacy.py").write_text("# @spec: REQ-999, req-001\n")

    tests = tmp_path / "tests"
    tests.mkdir()
    (tests / "test_auth.py").write_text("def test_req_002_lockout():\n    pass\n")
    return tmp_path


class TestExtractRequirements:
    """Test requirement extraction from spec text."""

    def test_headers_with_keywords(self):
        reqs = extract_requirements(LOGIN_SPEC, "auth/login")
        assert [(r.id, r.keyword, r.title) for r in reqs] == [
            ("REQ-001", "SHALL", "Sign in"),
            ("REQ-002", "MUST", "Lockout"),
            ("REQ-003", "SHOULD", "Audit"),
        ]
        assert reqs[0].line == 7

    def test_inline_mentions_and_dedup(self):
        reqs = extract_requirements("See REQ-010 and req-010.\nREQ-011 MAY apply.\n", "x")
        assert [r.id for r in reqs] == ["REQ-010", "REQ-011"]
        assert reqs[1].keyword == "MAY"

    def test_parser_reads_every_spec(self, project):
        reqs = SpecRequirementParser(project / ".sdd").parse()
        assert {r.spec_id for r in reqs} == {"auth/login"}
        assert len(reqs) == 3
        assert SpecRequirementParser(project / ".sdd").parse("missing") == []


class TestScanners:
    """Test code and test reference scanning."""

    def test_is_test_file(self, tmp_path):
        assert is_test_file(tmp_path / "test_x.py")
        assert is_test_file(tmp_path / "login.spec.ts")
        assert is_test_file(tmp_path / "tests" / "helpers.py", tmp_path)
        assert not is_test_file(tmp_path / "src" / "auth.py", tmp_path)

    def test_code_scanner_reads_annotations(self, project):
        refs = CodeScanner(project).scan()
        assert sorted((r.req_id, r.file, r.line) for r in refs) == [
            ("REQ-001", "src/auth.py", 1),
            ("REQ-001", "src/legacy.py", 1),
            ("REQ-999", "src/legacy.py", 1),
        ]
        assert all(r.type == "code" for r in refs)

    def test_code_scanner_exclude(self, project):
        refs = CodeScanner(project, exclude=["*/legacy.py"]).scan()
        assert [r.file for r in refs] == ["src/auth.py"]

    def test_test_scanner_reads_test_names(self, project):
        refs = TestScanner(project).scan()
        assert [(r.req_id, r.file, r.type) for r in refs] == [("REQ-002", "tests/test_auth.py", "test")]
        assert refs[0].context == "test_req_002_lockout"

    def test_test_scanner_js_descriptions(self, tmp_path):
        path = tmp_path / "login.test.ts"
        path.write_text("it('REQ-005 rejects bad passwords', () => {})\n")
        refs = TestScanner(tmp_path).scan_file(path)
        assert [r.req_id for r in refs] == ["REQ-005"]


class TestSyncMatcher:
    """Test matching requirements to references."""

    def test_match(self, project):
        reqs = SpecRequirementParser(project / ".sdd").parse()
        result = SyncMatcher().match(reqs, CodeScanner(project).scan(), TestScanner(project).scan())

        assert result.implemented == ["REQ-001", "REQ-002"]
        assert result.missing == ["REQ-003"]
        assert result.sync_rate == 66.67
        assert result.specs[0].missing_count == 1
        assert [o.text.split(":")[0] for o in result.orphans] == ["REQ-999"]

    def test_sync_rate(self):
        assert sync_rate(0, 0) == 100.0
        assert sync_rate(1, 3) == 33.33

    def test_sync_rate_rounds_half_up(self):
        assert sync_rate(1, 800) == 0.13
        assert sync_rate(7, 8) == 87.5


class TestSyncReporter:
    """Test report rendering and the CI threshold."""

    @pytest.fixture
    def result(self, project):
        reqs = SpecRequirementParser(project / ".sdd").parse()
        return SyncMatcher().match(reqs, CodeScanner(project).scan(), TestScanner(project).scan())

    def test_terminal(self, result):
        text = SyncReporter(colors=False).format_terminal(result)
        assert "✓ Implemented (2/3)" in text
        assert "✗ Missing (1/3)" in text
        assert "  - REQ-003: Audit" in text
        assert "Sync rate: 66.67% (2/3)" in text

    def test_json(self, result):
        data = json.loads(SyncReporter().format_json(result))
        assert data["missing"] == ["REQ-003"]
        assert data["total_requirements"] == 3

    def test_markdown(self, result):
        text = SyncReporter().format_markdown(result)
        assert "| auth/login | 3 | 2 | 1 | 66.67% |" in text
        assert "- **REQ-003**: Audit" in text

    def test_threshold(self, result):
        assert check_threshold(result, 80) == "Sync rate 66.67% is below threshold 80%"
        assert check_threshold(result, 50) is None
