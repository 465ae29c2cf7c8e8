from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

DEFAULT_ENABLED_FIELDS = {
    "episodeNumber",
    "sceneNumber",
    "shotNumber",
    "takeNumber",
    "cardNumber",
    "cameraFile",
    "soundFile",
    "descriptionOfShot",
    "notesForTake",
}


@dataclass
class ProjectSettings:
    camera_count: int = 1
    enabled_fields: Set[str] = field(default_factory=lambda: set(DEFAULT_ENABLED_FIELDS))
    custom_fields: List[str] = field(default_factory=list)

    def is_enabled(self, field_id: str) -> bool:
        # Per-camera ids (cameraFile2, cardNumber3) follow their base field.
        base = field_id.rstrip("0123456789") or field_id
        return field_id in self.enabled_fields or base in self.enabled_fields


@dataclass
class Project:
    project_id: str
    name: str
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    logo_uri: Optional[str] = None
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def camera_count(self) -> int:
        return self.settings.camera_count


@dataclass
class Take:
    take_id: str
    project_id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    unique_id: int = 0
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def scene(self) -> Optional[str]:
        return _clean(self.fields.get("sceneNumber"))

    @property
    def shot(self) -> Optional[str]:
        return _clean(self.fields.get("shotNumber"))

    @property
    def take_number(self) -> Optional[int]:
        raw = _clean(self.fields.get("takeNumber"))
        if raw is None or not raw.isdigit():
            return None
        return int(raw)

    @property
    def classification(self) -> Optional[str]:
        return self.fields.get("classification") or None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None
