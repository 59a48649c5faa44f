"""Tests for sdd.reverse: scanning, draft extraction, metadata and Serena checks."""

import pytest

from sdd.lib.config import SddConfig
from sdd.lib.errors import FileSystemError, SddError, SerenaUnavailableError
from sdd.reverse.extractor import (
    confidence_score,
    extract_drafts,
    extract_symbols,
    finalize_drafts,
    generate_draft_spec,
    get_draft,
    load_drafts,
    review_draft,
)
from sdd.reverse.meta import get_last_scan, get_scan_history, load_meta, record_scan
from sdd.reverse.scanner import detect_language, format_scan_result, infer_domains, scan_project
from sdd.reverse.serena import check_serena, ensure_serena
from sdd.spec.validator import validate_spec

LOGIN_PY = '''def get_user(user_id):
    """Fetch a user."""
    return None


class Session:
    pass


def _private():
    pass
'''


@pytest.fixture
def app(tmp_path):
    root = tmp_path / "app"
    files = {
        "src/auth/login.py": LOGIN_PY,
        "src/auth/tokens.py": "def create_token(user):\n    return 'x'\n",
        "src/billing/invoice.py": "def list_invoices():\n    return []\n",
        "src/utils/helpers.py": "def helper():\n    pass\n",
        "README.md": "# App\n",
        "node_modules/lib/index.js": "function x() {}\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def sdd_dir(tmp_path):
    path = tmp_path / ".sdd"
    path.mkdir()
    return path


class TestScanProject:
    """Test the source tree scan."""

    def test_scan_counts_source_files(self, app):
        result = scan_project(app)
        assert result.files == [
            "src/auth/login.py", "src/auth/tokens.py", "src/billing/invoice.py", "src/utils/helpers.py",
        ]
        assert result.languages == {"python": 4}
        assert result.complexity.grade == "low"

    def test_domains_skip_utility_dirs(self, app):
        domains = scan_project(app).domains
        assert [(d.name, d.file_count) for d in domains] == [("auth", 2), ("billing", 1)]
        assert domains[0].confidence == 71

    def test_include_exclude_and_language(self, app):
        assert scan_project(app, include="src/auth/*").file_count == 2
        assert scan_project(app, exclude="billing").file_count == 3
        assert scan_project(app, language="go").file_count == 0

    def test_depth_limit(self, app):
        assert scan_project(app, depth=1).files == []

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileSystemError):
            scan_project(tmp_path / "missing")

    def test_progress_callback(self, app):
        seen = []
        scan_project(app, on_progress=lambda file, index, total: seen.append((index, total)))
        assert seen[-1] == (4, 4)

    def test_detect_language(self):
        assert detect_language("a/b.TSX") == "typescript"
        assert detect_language("README.md") is None

    def test_infer_domains_needs_root_dir(self):
        assert infer_domains(["other/auth/x.py", "src/x.py"]) == []

    def test_format(self, app):
        text = format_scan_result(scan_project(app))
        assert "auth (src/auth) files: 2, confidence: 71%" in text
        assert "Grade: LOW" in text


class TestExtraction:
    """Test symbol extraction and draft specs."""

    def test_extract_symbols(self):
        symbols = extract_symbols(LOGIN_PY, "src/auth/login.py")
        assert [(s.name, s.kind, s.line, s.documented) for s in symbols] == [
            ("get_user", "function", 1, True),
            ("Session", "class", 6, False),
        ]

    def test_extract_typescript_symbols(self):
        source = "export class Cart {}\nexport async function addItem() {}\nexport const removeItem = (id) => id\n"
        assert [s.name for s in extract_symbols(source, "cart.ts")] == ["Cart", "addItem", "removeItem"]

    def test_confidence_score(self):
        symbols = extract_symbols(LOGIN_PY, "login.py")
        assert confidence_score(symbols) == 60
        assert confidence_score([]) == 0

    def test_draft_spec_validates(self):
        content = generate_draft_spec("auth", "login", extract_symbols(LOGIN_PY, "src/auth/login.py"))
        assert "### REQ-01: get_user" in content
        assert "- **WHEN** it is fetched via `get_user`" in content
        assert validate_spec(content).valid

    def test_extract_drafts(self, app, sdd_dir):
        drafts, skipped = extract_drafts(sdd_dir, scan_project(app))
        assert [d.id for d in drafts] == ["auth/login", "auth/tokens", "billing/invoice"]
        assert skipped == 0
        assert (sdd_dir / ".reverse-drafts" / "auth--login.json").exists()
        assert load_meta(sdd_dir)["extractionStatus"]["pendingReviewCount"] == 3

    def test_extract_single_domain(self, app, sdd_dir):
        drafts, _ = extract_drafts(sdd_dir, scan_project(app), domain="billing")
        assert [d.id for d in drafts] == ["billing/invoice"]

    def test_min_confidence_skips(self, app, sdd_dir):
        drafts, skipped = extract_drafts(sdd_dir, scan_project(app), min_confidence=70)
        assert drafts == []
        assert skipped == 3

    def test_invalid_draft_files_are_skipped(self, sdd_dir, caplog):
        (sdd_dir / ".reverse-drafts").mkdir()
        (sdd_dir / ".reverse-drafts" / "broken.json").write_text("{")
        assert load_drafts(sdd_dir) == []
        assert "skipping invalid draft" in caplog.text


class TestReviewAndFinalize:
    """Test the review workflow."""

    @pytest.fixture
    def extracted(self, app, sdd_dir):
        extract_drafts(sdd_dir, scan_project(app))
        return sdd_dir

    def test_review(self, extracted):
        draft = review_draft(extracted, "auth/login", approve=True, comment="looks right")
        assert draft.status == "approved"
        assert draft.reviewed_at
        assert get_draft(extracted, "auth/login").comment == "looks right"
        assert review_draft(extracted, "auth/tokens", approve=False).status == "rejected"
        assert [d.id for d in load_drafts(extracted, "pending")] == ["billing/invoice"]

    def test_missing_draft(self, extracted):
        with pytest.raises(FileSystemError):
            get_draft(extracted, "auth/nope")

    def test_finalize_writes_approved_only(self, extracted):
        review_draft(extracted, "auth/login", approve=True)
        written = finalize_drafts(extracted)
        assert written == [extracted / "specs" / "auth" / "login" / "spec.md"]
        assert get_draft(extracted, "auth/login").status == "finalized"
        assert load_meta(extracted)["extractionStatus"]["finalizedCount"] == 1

    def test_finalize_unapproved_draft_is_skipped(self, extracted, caplog):
        assert finalize_drafts(extracted, "auth/login") == []
        assert "not approved" in caplog.text

    def test_finalize_keeps_existing_spec_without_force(self, extracted):
        review_draft(extracted, "auth/login", approve=True)
        spec = extracted / "specs" / "auth" / "login" / "spec.md"
        spec.parent.mkdir(parents=True)
        spec.write_text("mine")
        assert finalize_drafts(extracted) == []
        assert spec.read_text() == "mine"
        assert finalize_drafts(extracted, force=True) == [spec]

    def test_finalized_draft_cannot_be_reviewed(self, extracted):
        review_draft(extracted, "auth/login", approve=True)
        finalize_drafts(extracted)
        with pytest.raises(SddError, match="already finalized"):
            review_draft(extracted, "auth/login", approve=False)


class TestScanMeta:
    """Test scan history in .reverse-meta.json."""

    def test_record_scan(self, app, sdd_dir):
        entry = record_scan(sdd_dir, scan_project(app), {"depth": 5, "include": None})
        assert entry["summary"]["suggestedDomains"] == ["auth", "billing"]
        assert entry["options"] == {"depth": 5}
        assert get_last_scan(sdd_dir)["id"] == entry["id"]

    def test_history_is_newest_first_and_capped(self, app, sdd_dir):
        result = scan_project(app)
        ids = [record_scan(sdd_dir, result)["id"] for _ in range(12)]
        history = get_scan_history(sdd_dir)
        assert len(history) == 10
        assert history[0]["id"] == ids[-1]

    def test_no_scan_yet(self, sdd_dir):
        assert get_last_scan(sdd_dir) is None


class TestSerena:
    """Test Serena availability checks."""

    def test_unavailable_by_default(self):
        assert not check_serena(SddConfig()).available
        with pytest.raises(SerenaUnavailableError, match="reverse extract"):
            ensure_serena(SddConfig(), "extract")

    def test_skip_check(self):
        assert not ensure_serena(SddConfig(), "extract", skip_check=True).available

    def test_available(self):
        status = ensure_serena(SddConfig(serena_available=True, serena_project="demo"), "extract")
        assert status.describe() == "Serena MCP connected (project: demo)"
