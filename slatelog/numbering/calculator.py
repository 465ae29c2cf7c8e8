"""
Next take number and next camera/sound file numbers derived from project history.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Union

from slatelog.logsheet.models import Project, Take

from . import fields as F
from .classification import NON_SLATED
from .index import HistoryIndex
from .ranges import Blank, format_number, highest_in, read_value

History = Union[HistoryIndex, Iterable[Take]]

_NON_SLATED_VALUES = {c.value for c in NON_SLATED}


def _index(history: History) -> HistoryIndex:
    if isinstance(history, HistoryIndex):
        return history
    return HistoryIndex.build(history)


def next_take_number(history: History, scene: Optional[str], shot: Optional[str]) -> int:
    highest = 0
    for take in _index(history).shot_takes(scene, shot):
        if take.take_number is not None:
            highest = max(highest, take.take_number)
    return highest + 1


def highest_file_number(history: History, field_id: str) -> int:
    highest = 0
    for take in _index(history).takes:
        highest = max(highest, highest_in(take.fields, field_id))
    return highest


def next_file_number(history: History, field_id: str, is_active: bool = True) -> int:
    """
    ``highest + 1`` while the camera is recording. A paused camera reuses the
    slate number of the most recent take that recorded on it.
    """
    index = _index(history)
    if is_active:
        return highest_file_number(index, field_id) + 1
    for take in index.newest_first():
        value = read_value(take.fields, field_id)
        if not isinstance(value, Blank):
            return value.upper
    return highest_file_number(index, field_id)


def compute_auto_fill(
    project: Project,
    history: History,
    camera_rec_state: Optional[Mapping[str, bool]] = None,
) -> Dict[str, Any]:
    """Initial field map for a new take."""
    index = _index(history)
    settings = project.settings
    cameras = F.camera_field_ids(settings.camera_count)
    rec = camera_rec_state or {}
    out: Dict[str, Any] = {}

    if not len(index):
        out[F.SCENE] = "1"
        out[F.SHOT] = "1"
        out[F.TAKE] = "1"
        if settings.is_enabled(F.SOUND_FILE):
            out[F.SOUND_FILE] = format_number(1)
        for fid in cameras:
            out[fid] = format_number(1)
        return out

    last = index.latest()
    base = next(
        (t for t in index.newest_first() if t.classification not in _NON_SLATED_VALUES),
        last,
    )
    episode = F.text(base.fields, F.EPISODE)
    if episode:
        out[F.EPISODE] = episode
    out[F.SCENE] = base.scene or "1"
    out[F.SHOT] = base.shot or "1"
    out[F.TAKE] = str(next_take_number(index, out[F.SCENE], out[F.SHOT]))

    if settings.is_enabled(F.CARD):
        for fid in F.card_field_ids(settings.camera_count):
            card = F.text(last.fields, fid) or F.text(last.fields, F.CARD)
            if card:
                out[fid] = card

    if settings.is_enabled(F.SOUND_FILE):
        out[F.SOUND_FILE] = format_number(next_file_number(index, F.SOUND_FILE))
    for fid in cameras:
        active = settings.camera_count == 1 or rec.get(fid, True)
        out[fid] = format_number(next_file_number(index, fid, is_active=active))

    description = last_shot_description(index, out[F.SCENE], out[F.SHOT])
    if description:
        out[F.DESCRIPTION] = description
    return out


def last_shot_description(history: History, scene: Optional[str], shot: Optional[str]) -> Optional[str]:
    for take in reversed(_index(history).shot_takes(scene, shot)):
        description = F.text(take.fields, F.DESCRIPTION)
        if description:
            return description
    return None


def cascade_field_change(
    values: Mapping[str, Any],
    field_id: str,
    value: Any,
    custom_field_count: int = 0,
) -> Dict[str, Any]:
    """
    Apply an edit to episode/scene/shot and reset the dependent fields so
    metadata from another shot does not leak into the new take.
    """
    out = dict(values)
    previous = out.get(field_id)
    out[field_id] = value
    customs = [F.custom_field_id(i) for i in range(custom_field_count)]

    if field_id == F.EPISODE:
        for key in (F.SCENE, F.SHOT, F.DESCRIPTION, F.NOTES, *customs):
            out[key] = ""
        out[F.TAKE] = "1"
    elif field_id == F.SCENE:
        for key in (F.SHOT, F.TAKE, F.DESCRIPTION, F.NOTES, *customs):
            out[key] = ""
    elif field_id == F.SHOT:
        out[F.TAKE] = ""
        if (previous or "") != (value or ""):
            out[F.DESCRIPTION] = ""
    return out
