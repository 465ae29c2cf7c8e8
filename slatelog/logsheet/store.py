import json
import logging
import os
import re
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4

from slatelog.config.config import get_config

from .models import Project, ProjectSettings, Take

logger = logging.getLogger(__name__)


def _safe_project_id(project_id: str) -> str:
    project_id = (project_id or "").strip()
    if not project_id:
        raise ValueError("project_id must be non-empty")
    # Keep it filename-safe.
    return re.sub(r"[^a-zA-Z0-9._-]+", "_", project_id)


def default_project_db_path(project_id: str) -> Path:
    pid = _safe_project_id(project_id)
    return Path(get_config()["data_dir"]) / pid / "logsheet.db"


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS projects (
  project_id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  camera_count INTEGER NOT NULL DEFAULT 1,
  enabled_fields_json TEXT NOT NULL,   -- JSON list of field ids
  custom_fields_json TEXT NOT NULL,    -- JSON list of names, ordered
  logo_uri TEXT,
  created_at REAL NOT NULL,
  updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS takes (
  take_id TEXT PRIMARY KEY,
  project_id TEXT NOT NULL,
  unique_id INTEGER NOT NULL,          -- monotonic per project, creation order
  fields_json TEXT NOT NULL,           -- JSON dict of take fields
  created_at REAL NOT NULL,
  updated_at REAL NOT NULL,
  FOREIGN KEY(project_id) REFERENCES projects(project_id)
);
CREATE INDEX IF NOT EXISTS idx_takes_project_order ON takes(project_id, created_at, unique_id);
"""

_IDENTITY_KEYS = ("sceneNumber", "shotNumber", "takeNumber")


def _normalize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    for key in _IDENTITY_KEYS:
        if key not in out:
            continue
        value = out[key]
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            out.pop(key)
        else:
            out[key] = str(value)
    return out


@dataclass
class LogSheetStore:
    """
    Per-project SQLite store for the project row and its takes.

    Every write applies immediately (autocommit) unless it runs inside
    ``atomic()``, which groups writes into one savepoint.
    """

    project_id: str
    db_path: Path
    conn: sqlite3.Connection
    _depth: int = 0

    @classmethod
    def open(cls, project_id: str, db_path: Optional[os.PathLike] = None) -> "LogSheetStore":
        pid = _safe_project_id(project_id)
        path = Path(db_path) if db_path is not None else default_project_db_path(pid)
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")

        store = cls(project_id=pid, db_path=path, conn=conn)
        store._ensure_schema()
        # Preserve the caller-provided id for display/debugging.
        store.conn.execute(
            "INSERT OR IGNORE INTO meta(key, value) VALUES(?, ?)",
            ("display_project_id", str(project_id)),
        )
        return store

    def close(self) -> None:
        try:
            self.conn.close()
        except sqlite3.Error as e:
            logger.warning("Closing %s failed: %s", self.db_path, e)

    def _ensure_schema(self) -> None:
        self.conn.executescript(SCHEMA_SQL)
        # Schema versioning for future migrations.
        self.conn.execute("INSERT OR IGNORE INTO meta(key, value) VALUES(?, ?)", ("schema_version", "1"))

    def _now(self) -> float:
        return time.time()

    def _j(self, obj: Any) -> str:
        return json.dumps(obj, ensure_ascii=True, separators=(",", ":"), sort_keys=True)

    def _ju(self, s: Optional[str]) -> Any:
        if not s:
            return None
        return json.loads(s)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Group writes; any exception rolls every write in the block back."""
        name = f"sp_{self._depth}"
        self._depth += 1
        self.conn.execute(f"SAVEPOINT {name}")
        try:
            yield
        except BaseException:
            self.conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self.conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        else:
            self.conn.execute(f"RELEASE SAVEPOINT {name}")
        finally:
            self._depth -= 1

    # --- project ---
    def _row_to_project(self, row: sqlite3.Row) -> Project:
        return Project(
            project_id=row["project_id"],
            name=row["name"],
            settings=ProjectSettings(
                camera_count=int(row["camera_count"]),
                enabled_fields=set(self._ju(row["enabled_fields_json"]) or []),
                custom_fields=list(self._ju(row["custom_fields_json"]) or []),
            ),
            logo_uri=row["logo_uri"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_project(self) -> Optional[Project]:
        cur = self.conn.execute("SELECT * FROM projects WHERE project_id=?", (self.project_id,))
        row = cur.fetchone()
        return self._row_to_project(row) if row else None

    def create_project(self, name: str, settings: ProjectSettings, logo_uri: Optional[str] = None) -> Project:
        ts = self._now()
        self.conn.execute(
            """
            INSERT INTO projects(project_id, name, camera_count, enabled_fields_json, custom_fields_json, logo_uri, created_at, updated_at)
            VALUES(?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                self.project_id,
                name,
                int(settings.camera_count),
                self._j(sorted(settings.enabled_fields)),
                self._j(list(settings.custom_fields)),
                logo_uri,
                ts,
                ts,
            ),
        )
        return Project(
            project_id=self.project_id,
            name=name,
            settings=settings,
            logo_uri=logo_uri,
            created_at=ts,
            updated_at=ts,
        )

    def update_project_cosmetics(self, name: Optional[str] = None, logo_uri: Optional[str] = None) -> bool:
        cur = self.conn.execute(
            """
            UPDATE projects
            SET name=COALESCE(?, name),
                logo_uri=COALESCE(?, logo_uri),
                updated_at=?
            WHERE project_id=?
            """,
            (name, logo_uri, self._now(), self.project_id),
        )
        return cur.rowcount > 0

    # --- takes ---
    def _row_to_take(self, row: sqlite3.Row) -> Take:
        return Take(
            take_id=row["take_id"],
            project_id=row["project_id"],
            fields=self._ju(row["fields_json"]) or {},
            unique_id=int(row["unique_id"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def list_takes(self) -> List[Take]:
        cur = self.conn.execute(
            "SELECT * FROM takes WHERE project_id=? ORDER BY created_at ASC, unique_id ASC",
            (self.project_id,),
        )
        return [self._row_to_take(r) for r in cur.fetchall()]

    def get_take(self, take_id: str) -> Optional[Take]:
        cur = self.conn.execute(
            "SELECT * FROM takes WHERE project_id=? AND take_id=?",
            (self.project_id, take_id),
        )
        row = cur.fetchone()
        return self._row_to_take(row) if row else None

    def create_take(self, fields: Dict[str, Any], take_id: Optional[str] = None) -> Take:
        cur = self.conn.execute(
            "SELECT COALESCE(MAX(unique_id), 0) AS mx FROM takes WHERE project_id=?",
            (self.project_id,),
        )
        unique_id = int(cur.fetchone()["mx"]) + 1
        tid = take_id or str(uuid4())
        ts = self._now()
        data = _normalize_fields(fields)
        self.conn.execute(
            """
            INSERT INTO takes(take_id, project_id, unique_id, fields_json, created_at, updated_at)
            VALUES(?, ?, ?, ?, ?, ?)
            """,
            (tid, self.project_id, unique_id, self._j(data), ts, ts),
        )
        return Take(take_id=tid, project_id=self.project_id, fields=data, unique_id=unique_id, created_at=ts, updated_at=ts)

    def update_take(self, take_id: str, fields: Dict[str, Any]) -> bool:
        cur = self.conn.execute(
            "UPDATE takes SET fields_json=?, updated_at=? WHERE project_id=? AND take_id=?",
            (self._j(_normalize_fields(fields)), self._now(), self.project_id, take_id),
        )
        return cur.rowcount > 0

    def delete_take(self, take_id: str) -> bool:
        """
        Delete a take and close the gap it leaves in its scene+shot take numbering.
        """
        take = self.get_take(take_id)
        if take is None:
            return False
        with self.atomic():
            self.conn.execute("DELETE FROM takes WHERE take_id=?", (take_id,))
            if take.scene and take.shot and take.take_number is not None:
                for other in self.list_takes():
                    n = other.take_number
                    if other.scene == take.scene and other.shot == take.shot and n is not None and n > take.take_number:
                        fields = dict(other.fields)
                        fields["takeNumber"] = str(n - 1)
                        self.update_take(other.take_id, fields)
        return True
