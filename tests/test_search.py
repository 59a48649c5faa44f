"""Tests for sdd.lib.search."""

import json

import pytest

from sdd.lib.errors import ErrorCode, SddError
from sdd.lib.search import (
    SearchOptions,
    compile_query,
    format_search_json,
    format_search_result,
    search_specs,
)

LOGIN = """---
title: Login
status: approved
author: Ann Lee
created: 2025-01-15
depends: [core]
tags: [security]
---

# Login

> Users sign in with a password.

The system SHALL hash the password.
"""

INVOICE = """---
title: Invoices
status: draft
author: Bob
created: 2025-03-01
---

# Invoices

The system SHALL email invoices monthly.
"""


@pytest.fixture
def sdd_dir(tmp_path):
    path = tmp_path / ".sdd"
    for spec_id, content in (("auth/login", LOGIN), ("billing/invoice", INVOICE)):
        spec_dir = path / "specs" / spec_id
        spec_dir.mkdir(parents=True)
        (spec_dir / "spec.md").write_text(content)
    return path


def ids(result) -> list[str]:
    return [hit.id for hit in result.items]


class TestFilters:
    """Test metadata filters."""

    def test_no_query_lists_everything(self, sdd_dir):
        result = search_specs(sdd_dir, SearchOptions())
        assert sorted(ids(result)) == ["auth/login", "billing/invoice"]
        assert result.query == "*"
        assert all(hit.score == 100 for hit in result.items)

    @pytest.mark.parametrize("options,expected", [
        (SearchOptions(status=["draft"]), ["billing/invoice"]),
        (SearchOptions(author="ann"), ["auth/login"]),
        (SearchOptions(created_after="2025-02-01"), ["billing/invoice"]),
        (SearchOptions(created_before="2025-02-01"), ["auth/login"]),
        (SearchOptions(depends_on="core"), ["auth/login"]),
        (SearchOptions(tags=["SECURITY"]), ["auth/login"]),
        (SearchOptions(phase=["design"]), []),
    ])
    def test_filters(self, sdd_dir, options, expected):
        assert ids(search_specs(sdd_dir, options)) == expected

    def test_missing_specs_dir(self, tmp_path):
        with pytest.raises(SddError) as exc:
            search_specs(tmp_path, SearchOptions())
        assert exc.value.code == ErrorCode.DIRECTORY_NOT_FOUND


class TestQuery:
    """Test free-text scoring."""

    def test_line_matches_score_ten_each(self, sdd_dir):
        result = search_specs(sdd_dir, SearchOptions(query="password"))
        assert ids(result) == ["auth/login"]
        hit = result.items[0]
        assert hit.score == 20
        assert [m.content for m in hit.matches] == [
            "> Users sign in with a **password**.",
            "The system SHALL hash the **password**.",
        ]

    def test_title_and_id_matches_rank_first(self, sdd_dir):
        result = search_specs(sdd_dir, SearchOptions(query="invoice"))
        assert ids(result) == ["billing/invoice"]
        assert result.items[0].score >= 80

    def test_score_is_capped(self, sdd_dir):
        assert search_specs(sdd_dir, SearchOptions(query="e")).items[0].score == 100

    def test_case_sensitive(self, sdd_dir):
        assert search_specs(sdd_dir, SearchOptions(query="PASSWORD", case_sensitive=True)).total == 0
        assert search_specs(sdd_dir, SearchOptions(query="PASSWORD")).total == 1

    def test_regex(self, sdd_dir):
        assert ids(search_specs(sdd_dir, SearchOptions(query=r"hash\s+the", regex=True))) == ["auth/login"]

    def test_invalid_regex_searches_literally(self, caplog):
        pattern = compile_query("a[", regex=True)
        assert pattern.search("xa[y")
        assert "invalid regex" in caplog.text


class TestSorting:
    """Test sorting and limits."""

    def test_sort_by_title_ascending(self, sdd_dir):
        result = search_specs(sdd_dir, SearchOptions(sort_by="title", ascending=True))
        assert [hit.title for hit in result.items] == ["Invoices", "Login"]

    def test_sort_by_created_descending(self, sdd_dir):
        assert ids(search_specs(sdd_dir, SearchOptions(sort_by="created"))) == ["billing/invoice", "auth/login"]

    def test_unknown_sort_field(self, sdd_dir):
        with pytest.raises(SddError, match="Unknown sort field"):
            search_specs(sdd_dir, SearchOptions(sort_by="size"))

    def test_limit(self, sdd_dir):
        assert search_specs(sdd_dir, SearchOptions(limit=1)).total == 1


class TestFormatting:
    """Test terminal and JSON output."""

    def test_terminal(self, sdd_dir):
        text = format_search_result(search_specs(sdd_dir, SearchOptions(query="password")))
        assert 'Search: "password"' in text
        assert "✅ auth/login" in text
        assert "   Title: Login" in text
        assert "██░░░░░░░░ 20%" in text

    def test_no_results(self, sdd_dir):
        text = format_search_result(search_specs(sdd_dir, SearchOptions(query="nothing-here")))
        assert "No matching specs." in text

    def test_json(self, sdd_dir):
        data = json.loads(format_search_json(search_specs(sdd_dir, SearchOptions(query="password"))))
        assert data["totalCount"] == 1
        assert data["items"][0]["matches"][0]["line"] == 12
