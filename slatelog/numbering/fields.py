"""
Field identifiers of a take and the legacy keys that back file-number ranges.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from slatelog.config.config import load_field_catalog

EPISODE = "episodeNumber"
SCENE = "sceneNumber"
SHOT = "shotNumber"
TAKE = "takeNumber"
CARD = "cardNumber"
DESCRIPTION = "descriptionOfShot"
NOTES = "notesForTake"
SOUND_FILE = "soundFile"
CAMERA_FILE = "cameraFile"

CLASSIFICATION = "classification"
SHOT_DETAILS = "shotDetails"
IS_GOOD_TAKE = "isGoodTake"
CAMERA_REC_STATE = "cameraRecState"
WASTE_OPTIONS = "wasteOptions"
INSERT_SOUND_SPEED = "insertSoundSpeed"

IDENTITY_FIELDS = (SCENE, SHOT, TAKE)

_CAMERA_RE = re.compile(r"^cameraFile(\d*)$")


def camera_field_ids(camera_count: int) -> List[str]:
    if camera_count <= 1:
        return [CAMERA_FILE]
    return [f"{CAMERA_FILE}{i}" for i in range(1, camera_count + 1)]


def file_field_ids(camera_count: int) -> List[str]:
    return [SOUND_FILE] + camera_field_ids(camera_count)


def is_camera_field(field_id: str) -> bool:
    return bool(_CAMERA_RE.match(field_id))


def is_file_field(field_id: str) -> bool:
    return field_id == SOUND_FILE or is_camera_field(field_id)


def camera_index(field_id: str) -> int:
    m = _CAMERA_RE.match(field_id)
    if not m:
        raise ValueError(f"not a camera file field: {field_id}")
    return int(m.group(1)) if m.group(1) else 1


def range_keys(field_id: str) -> Tuple[str, str]:
    """Stable ``(from, to)`` keys that hold the canonical bounds of a ranged value."""
    if field_id == SOUND_FILE:
        return "sound_from", "sound_to"
    n = camera_index(field_id)
    return f"camera{n}_from", f"camera{n}_to"


def custom_field_id(index: int) -> str:
    return f"custom_{index}"


def card_field_ids(camera_count: int) -> List[str]:
    if camera_count <= 1:
        return [CARD]
    return [f"{CARD}{i}" for i in range(1, camera_count + 1)]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def text(fields: Dict[str, Any], field_id: str) -> Optional[str]:
    value = fields.get(field_id)
    if is_blank(value):
        return None
    return str(value).strip()


def field_label(field_id: str) -> str:
    catalog = load_field_catalog()
    labels = catalog.get("labels", {})
    if field_id in labels:
        return labels[field_id]
    if is_camera_field(field_id):
        return catalog.get("camera_file_label", "Camera File {index}").format(index=camera_index(field_id))
    if field_id.startswith(CARD) and field_id[len(CARD):].isdigit():
        return catalog.get("card_number_label", "Card {index}").format(index=field_id[len(CARD):])
    return field_id
