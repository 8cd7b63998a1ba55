"""SQLite storage for extraction configs and ingested jobs."""

import json
import logging
import sqlite3
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from jobingest.core.schemas import CompletionState, ExtractedJobData
from jobingest.core.urls import normalize_source_url
from jobingest.extraction.models import ExtractionConfig

logger = logging.getLogger(__name__)

_EXTRACTION_CONFIGS_TABLE = """
CREATE TABLE IF NOT EXISTS extraction_configs (
    id              TEXT    PRIMARY KEY,
    name            TEXT    NOT NULL,
    version         INTEGER NOT NULL DEFAULT 1,
    match_patterns  TEXT    NOT NULL,
    match_hash      TEXT    NOT NULL,
    extract_rules   TEXT    NOT NULL,
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL,
    UNIQUE(match_hash, version)
);
"""

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    source_url        TEXT    NOT NULL UNIQUE,
    title             TEXT    NOT NULL,
    company_name      TEXT    NOT NULL DEFAULT '',
    data_json         TEXT    NOT NULL,
    completion_state  TEXT    NOT NULL,
    config_id         TEXT,
    created_at        TEXT    NOT NULL
);
"""


class StoredJob(BaseModel):
    """A job row read back from the database."""

    model_config = ConfigDict(frozen=True)

    id: int
    source_url: str
    data: ExtractedJobData
    completion_state: CompletionState | None
    config_id: str | None = None
    created_at: str


def _now() -> str:
    return datetime.now(UTC).isoformat()


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_EXTRACTION_CONFIGS_TABLE)
    conn.execute(_JOBS_TABLE)
    conn.commit()
    return conn


def _row_to_config(row: sqlite3.Row) -> ExtractionConfig:
    return ExtractionConfig.from_record(
        {
            "id": row["id"],
            "name": row["name"],
            "version": row["version"],
            "match_patterns": json.loads(row["match_patterns"]),
            "match_hash": row["match_hash"],
            "extract_rules": json.loads(row["extract_rules"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
    )


def list_extraction_configs(conn: sqlite3.Connection) -> list[ExtractionConfig]:
    """Latest version of each stored config, oldest first.

    Rows that no longer parse are skipped.
    """
    rows = conn.execute(
        """
        SELECT * FROM extraction_configs AS c
        WHERE version = (
            SELECT MAX(version) FROM extraction_configs WHERE match_hash = c.match_hash
        )
        ORDER BY created_at, rowid
        """
    ).fetchall()
    configs: list[ExtractionConfig] = []
    for row in rows:
        try:
            configs.append(_row_to_config(row))
        except (ValidationError, json.JSONDecodeError, KeyError):
            logger.warning("Skipping unreadable extraction config %s", row["id"], exc_info=True)
    return configs


def get_extraction_config(conn: sqlite3.Connection, config_id: str) -> ExtractionConfig | None:
    row = conn.execute(
        "SELECT * FROM extraction_configs WHERE id = ?", (config_id,)
    ).fetchone()
    return _row_to_config(row) if row is not None else None


def insert_extraction_config(
    conn: sqlite3.Connection,
    config: ExtractionConfig,
) -> ExtractionConfig | None:
    """Persist a config with a fresh id and timestamps.

    Returns the stored config, or None if (match_hash, version) already
    exists or the write failed.
    """
    now = _now()
    stored = config.model_copy(
        update={"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
    )
    record = stored.to_record()
    try:
        conn.execute(
            """
            INSERT INTO extraction_configs
                (id, name, version, match_patterns, match_hash, extract_rules,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record["id"],
                record["name"],
                record["version"],
                json.dumps(record["match_patterns"]),
                record["match_hash"],
                json.dumps(record["extract_rules"]),
                record["created_at"],
                record["updated_at"],
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        logger.info(
            "Config with hash %s v%d already exists", config.match_hash[:12], config.version,
        )
        return None
    except sqlite3.Error:
        logger.warning("Failed to store extraction config '%s'", config.name, exc_info=True)
        return None
    return stored


def insert_job(
    conn: sqlite3.Connection,
    source_url: str,
    data: ExtractedJobData,
    completion_state: CompletionState,
    config_id: str | None = None,
) -> int | None:
    """Insert a job keyed by its normalized source URL.

    Returns the new row id, or None if the URL is already stored.
    """
    try:
        cursor = conn.execute(
            """
            INSERT INTO jobs
                (source_url, title, company_name, data_json, completion_state,
                 config_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                normalize_source_url(source_url),
                data.title,
                data.company_name or "",
                json.dumps(data.to_json_dict()),
                completion_state.value,
                config_id,
                _now(),
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        return None
    return cursor.lastrowid


def find_job_by_source_url(conn: sqlite3.Connection, source_url: str) -> StoredJob | None:
    row = conn.execute(
        "SELECT * FROM jobs WHERE source_url = ? LIMIT 1",
        (normalize_source_url(source_url),),
    ).fetchone()
    if row is None:
        return None
    return StoredJob(
        id=row["id"],
        source_url=row["source_url"],
        data=ExtractedJobData.model_validate(json.loads(row["data_json"])),
        completion_state=CompletionState.parse(row["completion_state"]),
        config_id=row["config_id"],
        created_at=row["created_at"],
    )


class SqliteStore:
    """Config and job store over a single SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @classmethod
    def open(cls, path: str | Path) -> "SqliteStore":
        return cls(init_db(path))

    def list_configs(self) -> list[ExtractionConfig]:
        return list_extraction_configs(self._conn)

    def insert_config(self, config: ExtractionConfig) -> ExtractionConfig | None:
        return insert_extraction_config(self._conn, config)

    def find_job(self, source_url: str) -> StoredJob | None:
        return find_job_by_source_url(self._conn, source_url)

    def insert_job(
        self,
        source_url: str,
        data: ExtractedJobData,
        completion_state: CompletionState,
        config_id: str | None = None,
    ) -> int | None:
        return insert_job(self._conn, source_url, data, completion_state, config_id)

    def close(self) -> None:
        self._conn.close()
