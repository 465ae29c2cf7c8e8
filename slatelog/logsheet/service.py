from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from slatelog.config.config import get_config

from .models import DEFAULT_ENABLED_FIELDS, Project, ProjectSettings, Take
from .store import LogSheetStore, default_project_db_path


@dataclass
class LogSheetService:
    """
    High-level log sheet API for one project.

    This service hides DB details and validates arguments before they reach the store.
    """

    project_id: str
    store: LogSheetStore

    @classmethod
    def open(cls, project_id: str, db_path: Optional[Path] = None) -> "LogSheetService":
        store = LogSheetStore.open(project_id=project_id, db_path=db_path)
        return cls(project_id=store.project_id, store=store)

    @property
    def db_path(self) -> Path:
        return self.store.db_path

    def close(self) -> None:
        self.store.close()

    def create_project(
        self,
        name: str,
        camera_count: Optional[int] = None,
        enabled_fields: Optional[Iterable[str]] = None,
        custom_fields: Optional[List[str]] = None,
        logo_uri: Optional[str] = None,
    ) -> Project:
        config = get_config()
        if camera_count is None:
            camera_count = int(config["default_camera_count"])
        max_cameras = int(config["max_camera_count"])
        if not 1 <= int(camera_count) <= max_cameras:
            raise ValueError(f"camera_count must be between 1 and {max_cameras}, got {camera_count}")
        if not (name or "").strip():
            raise ValueError("project name must be non-empty")
        if self.store.get_project() is not None:
            raise ValueError(f"project {self.project_id} already exists")
        settings = ProjectSettings(
            camera_count=int(camera_count),
            enabled_fields=set(enabled_fields) if enabled_fields is not None else set(DEFAULT_ENABLED_FIELDS),
            custom_fields=list(custom_fields or []),
        )
        return self.store.create_project(name=name.strip(), settings=settings, logo_uri=logo_uri)

    def get_project(self) -> Optional[Project]:
        return self.store.get_project()

    def rename_project(self, name: Optional[str] = None, logo_uri: Optional[str] = None) -> bool:
        if name is not None and not name.strip():
            raise ValueError("project name must be non-empty")
        return self.store.update_project_cosmetics(name=name.strip() if name else None, logo_uri=logo_uri)

    def list_takes(self) -> List[Take]:
        return self.store.list_takes()

    def get_take(self, take_id: str) -> Optional[Take]:
        return self.store.get_take(take_id)

    def delete_take(self, take_id: str) -> bool:
        return self.store.delete_take(take_id)

    def editor(self):
        from slatelog.numbering.editor import TakeEditor

        return TakeEditor(self.store)


def init_project_logsheet(project_id: str, db_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Convenience initializer for external callers.
    """
    db_path = db_path or default_project_db_path(project_id)
    svc = LogSheetService.open(project_id=project_id, db_path=db_path)
    canonical = svc.project_id
    svc.close()
    return {"project_id": canonical, "db_path": str(db_path)}
