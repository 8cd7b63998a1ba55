"""Tests for the SQLite store: configs (versioned, insert-if-absent) and jobs (URL dedup)."""

import json
import sqlite3

import pytest

from jobingest.core.db import (
    SqliteStore,
    find_job_by_source_url,
    get_extraction_config,
    init_db,
    insert_extraction_config,
    insert_job,
    list_extraction_configs,
)
from jobingest.core.schemas import CompletionState, ExtractedJobData
from jobingest.extraction.models import (
    CssExists,
    CssRule,
    ExtractionConfig,
    JsonLdRule,
    Transform,
    UrlPattern,
)


def _config(name: str = "jobs.acme.com - JSON-LD", host: str = "acme") -> ExtractionConfig:
    return ExtractionConfig.create(
        name=name,
        match_patterns=[
            UrlPattern(pattern=host),
            CssExists(selector='script[type="application/ld+json"]', content_contains="JobPosting"),
        ],
        extract_rules={
            "title": [JsonLdRule(path="$.title"), CssRule(selector="h1")],
            "description": [JsonLdRule(path="$.description", transforms=[Transform.INNER_TEXT])],
        },
    )


def _job(**kw: object) -> ExtractedJobData:
    defaults: dict[str, object] = {
        "title": "Engineer",
        "company_name": "Acme Corp",
        "benefits": ["Gym"],
    }
    defaults.update(kw)
    return ExtractedJobData(**defaults)  # type: ignore[arg-type]


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite connection per test."""
    return init_db(tmp_path / "test.db")


class TestInitDb:
    def test_creates_tables(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert "extraction_configs" in tables
        assert "jobs" in tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        """Calling init_db twice on the same path doesn't error."""
        p = tmp_path / "double.db"
        init_db(p).close()
        conn = init_db(p)
        assert conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0] == 0

    def test_creates_parent_dirs(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        p = tmp_path / "nested" / "dir" / "jobs.db"
        init_db(p).close()
        assert p.exists()


# ---------------------------------------------------------------------------
# Extraction configs
# ---------------------------------------------------------------------------


class TestExtractionConfigs:
    def test_insert_assigns_id_and_timestamps(self, db) -> None:  # type: ignore[no-untyped-def]
        stored = insert_extraction_config(db, _config())
        assert stored is not None
        assert stored.id
        assert stored.created_at
        assert stored.created_at == stored.updated_at

    def test_round_trip(self, db) -> None:  # type: ignore[no-untyped-def]
        stored = insert_extraction_config(db, _config())
        assert stored is not None
        loaded = get_extraction_config(db, stored.id or "")
        assert loaded == stored

    def test_json_columns(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_extraction_config(db, _config())
        row = db.execute("SELECT match_patterns, extract_rules FROM extraction_configs").fetchone()
        patterns = json.loads(row["match_patterns"])
        rules = json.loads(row["extract_rules"])
        assert patterns[0] == {"patternType": "url_pattern", "pattern": "acme"}
        assert rules["description"][0]["transforms"] == ["inner_text"]

    def test_duplicate_hash_and_version_returns_none(self, db) -> None:  # type: ignore[no-untyped-def]
        assert insert_extraction_config(db, _config()) is not None
        assert insert_extraction_config(db, _config(name="other name")) is None
        assert len(list_extraction_configs(db)) == 1

    def test_new_version_accepted(self, db) -> None:  # type: ignore[no-untyped-def]
        v1 = insert_extraction_config(db, _config())
        assert v1 is not None
        v2 = insert_extraction_config(db, v1.with_rules({"title": [CssRule(selector="h1")]}))
        assert v2 is not None
        assert v2.version == 2
        assert v2.id != v1.id

    def test_list_returns_latest_version_per_signature(self, db) -> None:  # type: ignore[no-untyped-def]
        v1 = insert_extraction_config(db, _config())
        other = insert_extraction_config(db, _config(name="globex", host="globex"))
        assert v1 is not None and other is not None
        v2 = insert_extraction_config(db, v1.with_rules({"title": [CssRule(selector="h1")]}))
        assert v2 is not None

        configs = list_extraction_configs(db)
        assert [(c.name, c.version) for c in configs] == [
            ("globex", 1),
            ("jobs.acme.com - JSON-LD", 2),
        ]

    def test_unreadable_row_skipped(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_extraction_config(db, _config())
        db.execute(
            "INSERT INTO extraction_configs VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            ("bad", "bad", 1, "not json", "h", "{}", "2000-01-01", "2000-01-01"),
        )
        db.commit()
        configs = list_extraction_configs(db)
        assert [c.name for c in configs] == ["jobs.acme.com - JSON-LD"]

    def test_get_missing(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_extraction_config(db, "nope") is None

    def test_closed_connection_returns_none(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        conn = init_db(tmp_path / "closed.db")
        conn.close()
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
        assert insert_extraction_config(conn, _config()) is None


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class TestJobs:
    def test_insert_and_find(self, db) -> None:  # type: ignore[no-untyped-def]
        job_id = insert_job(db, "https://jobs.acme.com/1", _job(), CompletionState.PARTIAL, "cfg-1")
        assert job_id is not None
        stored = find_job_by_source_url(db, "https://jobs.acme.com/1")
        assert stored is not None
        assert stored.id == job_id
        assert stored.data == _job()
        assert stored.completion_state is CompletionState.PARTIAL
        assert stored.config_id == "cfg-1"

    def test_dedup_on_normalized_url(self, db) -> None:  # type: ignore[no-untyped-def]
        assert insert_job(db, "https://jobs.acme.com/1", _job(), CompletionState.PARTIAL) is not None
        assert insert_job(db, "HTTPS://JOBS.acme.com/1/?utm=x", _job(), CompletionState.COMPLETE) is None
        assert find_job_by_source_url(db, "https://jobs.acme.com/1#apply") is not None

    def test_missing_job(self, db) -> None:  # type: ignore[no-untyped-def]
        assert find_job_by_source_url(db, "https://jobs.acme.com/404") is None

    def test_data_stored_as_camel_case_json(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_job(db, "https://jobs.acme.com/1", _job(), CompletionState.PARTIAL)
        row = db.execute("SELECT title, company_name, data_json FROM jobs").fetchone()
        assert row["title"] == "Engineer"
        assert row["company_name"] == "Acme Corp"
        assert json.loads(row["data_json"])["companyName"] == "Acme Corp"

    def test_unknown_state_reads_as_none(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_job(db, "https://jobs.acme.com/1", _job(), CompletionState.PARTIAL)
        db.execute("UPDATE jobs SET completion_state = 'legacy'")
        db.commit()
        stored = find_job_by_source_url(db, "https://jobs.acme.com/1")
        assert stored is not None
        assert stored.completion_state is None


class TestSqliteStore:
    def test_wraps_module_functions(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        store = SqliteStore.open(tmp_path / "store.db")
        stored = store.insert_config(_config())
        assert stored is not None
        assert store.list_configs() == [stored]
        assert store.insert_job("https://a.test/1", _job(), CompletionState.SUFFICIENT, stored.id) == 1
        found = store.find_job("https://a.test/1")
        assert found is not None
        assert found.config_id == stored.id
        store.close()
