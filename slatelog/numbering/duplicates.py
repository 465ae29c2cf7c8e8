"""
Duplicate detection for a candidate take against the rest of its project.

Two checks run in order. A take-number collision inside the same scene+shot
always blocks. File-number overlaps are classified per field as ``lower``,
``upper`` or ``within``; only ``lower`` overlaps can be resolved by inserting
the candidate before the take it collides with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from slatelog.logsheet.models import Take

from . import fields as F
from .classification import TakeState, disabled_fields
from .index import HistoryIndex
from .ranges import Blank, FileValue, format_value, overlaps, read_value, span

logger = logging.getLogger(__name__)


class ConflictType(str, Enum):
    LOWER = "lower"
    UPPER = "upper"
    WITHIN = "within"


class DuplicateKind(str, Enum):
    NONE = "none"
    BLOCKING = "blocking"
    INSERT_BEFORE = "insert_before"


class DuplicateReason(str, Enum):
    TAKE_NUMBER = "take_number"
    RANGE_CONFLICT = "range_conflict"
    CROSS_TAKE = "cross_take"


@dataclass
class Candidate:
    """A new or edited take as entered, before it is persisted."""

    values: Dict[str, Any]
    state: TakeState = field(default_factory=TakeState)
    take_id: Optional[str] = None

    def value(self, field_id: str) -> FileValue:
        return read_value(self.values, field_id)


@dataclass(frozen=True)
class FieldConflict:
    field_id: str
    conflict_type: ConflictType
    target: Take
    existing_value: FileValue
    candidate_value: FileValue

    @property
    def blocking(self) -> bool:
        return self.conflict_type != ConflictType.LOWER


@dataclass(frozen=True)
class FieldShift:
    """Shift ``field_id`` by ``delta`` from ``from_number``; the candidate takes the vacated slot."""

    field_id: str
    from_number: int
    delta: int


@dataclass
class DuplicateResult:
    kind: DuplicateKind = DuplicateKind.NONE
    reason: Optional[DuplicateReason] = None
    message: str = ""
    target: Optional[Take] = None
    conflicts: Tuple[FieldConflict, ...] = ()
    suggested_take_number: Optional[int] = None
    shifts: Tuple[FieldShift, ...] = ()

    @property
    def is_blocking(self) -> bool:
        return self.kind == DuplicateKind.BLOCKING

    @property
    def can_insert_before(self) -> bool:
        return self.kind == DuplicateKind.INSERT_BEFORE

    @property
    def matched_fields(self) -> List[str]:
        return [c.field_id for c in self.conflicts]


def location_label(take: Take) -> str:
    if take.classification in ("SFX", "Ambience"):
        return take.classification
    return (
        f"Scene {take.scene or 'Unknown'}, "
        f"Shot {take.shot or 'Unknown'}, "
        f"Take {F.text(take.fields, F.TAKE) or 'Unknown'}"
    )


def classify_overlap(candidate: FileValue, existing: FileValue) -> Optional[ConflictType]:
    if not overlaps(candidate, existing):
        return None
    if candidate.lower == existing.lower:
        return ConflictType.LOWER
    if candidate.upper == existing.upper:
        return ConflictType.UPPER
    return ConflictType.WITHIN


def tracked_fields(candidate: Candidate, camera_count: int) -> List[str]:
    """File fields of the candidate that take part in collision checks."""
    disabled = disabled_fields(candidate.state, camera_count)
    out = []
    for fid in F.file_field_ids(camera_count):
        if fid in disabled:
            continue
        if F.is_camera_field(fid) and camera_count > 1 and not candidate.state.is_rec_active(fid):
            continue
        if isinstance(candidate.value(fid), Blank):
            continue
        out.append(fid)
    return out


def field_conflicts(field_id: str, value: FileValue, index: HistoryIndex) -> List[FieldConflict]:
    out = []
    for existing, take in index.values(field_id):
        if existing.lower > value.upper:
            break
        kind = classify_overlap(value, existing)
        if kind is not None:
            out.append(FieldConflict(field_id, kind, take, existing, value))
    return out


def target_blank(take: Take, camera_side: bool, camera_count: int) -> bool:
    """Whether ``take`` has no camera values (``camera_side``) or no sound value."""
    ids = F.camera_field_ids(camera_count) if camera_side else [F.SOUND_FILE]
    return all(isinstance(read_value(take.fields, fid), Blank) for fid in ids)


def find_take_collision(candidate: Candidate, index: HistoryIndex) -> Optional[DuplicateResult]:
    if candidate.state.is_non_slated:
        return None
    scene = F.text(candidate.values, F.SCENE)
    shot = F.text(candidate.values, F.SHOT)
    raw_take = F.text(candidate.values, F.TAKE)
    if not scene or not shot or not raw_take or not raw_take.isdigit():
        return None
    take_number = int(raw_take)

    same_shot = index.shot_takes(scene, shot)
    existing = next((t for t in same_shot if t.take_number == take_number), None)
    if existing is None:
        return None
    highest = max(t.take_number or 0 for t in same_shot)
    return DuplicateResult(
        kind=DuplicateKind.BLOCKING,
        reason=DuplicateReason.TAKE_NUMBER,
        message=(
            f"Take {take_number} already exists in Scene {scene}, Shot {shot}. "
            f"Highest available take number is {highest + 1}."
        ),
        target=existing,
        suggested_take_number=highest + 1,
    )


# Outcome of a file collision once same-target pairs are settled, keyed by
# (sound_matches, camera_matches, camera_target_sound_blank, sound_target_camera_blank).
# "sound"/"camera" insert before that side's target; "blocked" is ambiguous ordering.
_DECISIONS: Dict[Tuple[bool, bool, bool, bool], Optional[str]] = {
    (False, False, False, False): None,
    (True, False, False, False): "sound",
    (True, False, False, True): "sound",
    (False, True, False, False): "camera",
    (False, True, True, False): "camera",
    (True, True, False, False): "blocked",
    (True, True, False, True): "sound",
    (True, True, True, False): "camera",
    (True, True, True, True): "sound",
}


def decide(
    sound_matches: bool,
    camera_matches: bool,
    same_target: bool,
    camera_target_sound_blank: bool = False,
    sound_target_camera_blank: bool = False,
) -> Optional[str]:
    if sound_matches and camera_matches and same_target:
        return "both"
    return _DECISIONS[(sound_matches, camera_matches, camera_target_sound_blank, sound_target_camera_blank)]


def _blocking(reason: DuplicateReason, message: str, target: Take, conflicts: Iterable[FieldConflict]) -> DuplicateResult:
    return DuplicateResult(
        kind=DuplicateKind.BLOCKING,
        reason=reason,
        message=message,
        target=target,
        conflicts=tuple(conflicts),
    )


def _plan_shifts(
    candidate: Candidate,
    target: Take,
    tracked: List[str],
    lower_conflicts: Dict[str, FieldConflict],
) -> Tuple[FieldShift, ...]:
    shifts = []
    for fid in tracked:
        delta = span(candidate.value(fid))
        held = read_value(target.fields, fid)
        if not isinstance(held, Blank):
            shifts.append(FieldShift(fid, held.lower, delta))
        elif fid in lower_conflicts:
            shifts.append(FieldShift(fid, lower_conflicts[fid].existing_value.lower, delta))
    return tuple(shifts)


def detect_duplicate(
    candidate: Candidate,
    history: Union[HistoryIndex, Iterable[Take]],
    camera_count: int = 1,
) -> DuplicateResult:
    if isinstance(history, HistoryIndex) and (candidate.take_id is None or candidate.take_id not in history.by_id):
        index = history
    else:
        takes = history.takes if isinstance(history, HistoryIndex) else history
        index = HistoryIndex.build(takes, exclude={candidate.take_id} if candidate.take_id else None)

    collision = find_take_collision(candidate, index)
    if collision is not None:
        return collision

    tracked = tracked_fields(candidate, camera_count)
    lower: Dict[str, FieldConflict] = {}
    for fid in tracked:
        for conflict in field_conflicts(fid, candidate.value(fid), index):
            if conflict.blocking:
                loc = location_label(conflict.target)
                return _blocking(
                    DuplicateReason.RANGE_CONFLICT,
                    (
                        f"{F.field_label(fid)} {format_value(conflict.candidate_value)} is part of a take "
                        f"that contains {format_value(conflict.existing_value)} at {loc}. "
                        "Adjust the value(s) to continue."
                    ),
                    conflict.target,
                    [conflict],
                )
            lower.setdefault(fid, conflict)

    if not lower:
        return DuplicateResult()

    sound = lower.get(F.SOUND_FILE)
    cameras = [c for fid, c in lower.items() if fid != F.SOUND_FILE]
    camera_targets = {c.target.take_id: c.target for c in cameras}
    if len(camera_targets) > 1:
        first, second = cameras[0], next(c for c in cameras if c.target.take_id != cameras[0].target.take_id)
        return _blocking(
            DuplicateReason.CROSS_TAKE,
            (
                f"{F.field_label(first.field_id)} {format_value(first.candidate_value)} is recorded at "
                f"{location_label(first.target)} and {F.field_label(second.field_id)} "
                f"{format_value(second.candidate_value)} at {location_label(second.target)}. "
                "Adjust your file numbers to continue."
            ),
            first.target,
            cameras,
        )

    camera_target = cameras[0].target if cameras else None
    same_target = bool(sound and camera_target and sound.target.take_id == camera_target.take_id)
    outcome = decide(
        sound_matches=sound is not None,
        camera_matches=camera_target is not None,
        same_target=same_target,
        camera_target_sound_blank=bool(camera_target and target_blank(camera_target, False, camera_count)),
        sound_target_camera_blank=bool(sound and target_blank(sound.target, True, camera_count)),
    )

    if outcome == "blocked":
        camera = cameras[0]
        return _blocking(
            DuplicateReason.CROSS_TAKE,
            (
                f"{F.field_label(F.SOUND_FILE)} {format_value(sound.candidate_value)} is recorded at {location_label(sound.target)} "
                f"and {F.field_label(camera.field_id)} {format_value(camera.candidate_value)} at "
                f"{location_label(camera.target)}. Inserting would break the file numbering; "
                "adjust your file numbers to continue."
            ),
            sound.target,
            [sound, camera],
        )

    target = sound.target if outcome in ("both", "sound") else camera_target
    conflicts = tuple(c for c in lower.values() if c.target.take_id == target.take_id)
    labels = " and ".join(F.field_label(c.field_id) for c in conflicts)
    logger.debug("Insert-before eligible at %s via %s", target.take_id, outcome)
    return DuplicateResult(
        kind=DuplicateKind.INSERT_BEFORE,
        message=f"{labels} duplicate found at {location_label(target)}. Do you want to insert before?",
        target=target,
        conflicts=conflicts,
        shifts=_plan_shifts(candidate, target, tracked, lower),
    )
