"""
Take classification state machine.

The state is an immutable ``TakeState``; every user action is a reducer that
returns a new state in one step. Disabled and mandatory field sets are derived
from the state on demand and never stored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Set

from . import fields as F
from .errors import InvalidFileNumber
from .ranges import clear_value, parse_field


class Classification(str, Enum):
    WASTE = "Waste"
    INSERT = "Insert"
    AMBIENCE = "Ambience"
    SFX = "SFX"


class ShotDetail(str, Enum):
    MOS = "MOS"
    NO_SLATE = "NO SLATE"


NON_SLATED = (Classification.AMBIENCE, Classification.SFX)
NEEDS_CONFIRMATION = (Classification.WASTE, Classification.INSERT)


@dataclass(frozen=True)
class WasteOptions:
    camera: bool = False
    sound: bool = False


@dataclass(frozen=True)
class TakeState:
    classification: Optional[Classification] = None
    shot_details: FrozenSet[ShotDetail] = frozenset()
    waste_options: WasteOptions = WasteOptions()
    insert_sound_speed: Optional[bool] = None
    camera_rec_state: Mapping[str, bool] = field(default_factory=dict)
    is_good_take: bool = False
    # Waste/Insert awaiting the user's answer in a dialog.
    pending: bool = False

    @property
    def is_non_slated(self) -> bool:
        return self.classification in NON_SLATED

    def is_rec_active(self, field_id: str) -> bool:
        return self.camera_rec_state.get(field_id, True)


def apply_classification(state: TakeState, new: Optional[Classification]) -> TakeState:
    """Select a classification; selecting the current one again clears it."""
    if new is not None and new == state.classification:
        new = None
    details = state.shot_details
    if new in NON_SLATED:
        details = details - {ShotDetail.MOS}
    if new in NEEDS_CONFIRMATION:
        return replace(
            state,
            classification=new,
            shot_details=details,
            waste_options=WasteOptions(),
            insert_sound_speed=None,
            pending=True,
        )
    return replace(
        state,
        classification=new,
        shot_details=details,
        waste_options=WasteOptions(),
        insert_sound_speed=None,
        pending=False,
    )


def confirm_waste(state: TakeState, camera: bool, sound: bool) -> TakeState:
    if state.classification != Classification.WASTE:
        raise ValueError("no Waste classification awaiting confirmation")
    return replace(state, waste_options=WasteOptions(camera=camera, sound=sound), pending=False)


def confirm_insert(state: TakeState, sound_speed: bool) -> TakeState:
    if state.classification != Classification.INSERT:
        raise ValueError("no Insert classification awaiting confirmation")
    return replace(state, insert_sound_speed=bool(sound_speed), pending=False)


def cancel_confirmation(state: TakeState) -> TakeState:
    if not state.pending:
        return state
    return replace(state, classification=None, waste_options=WasteOptions(), insert_sound_speed=None, pending=False)


def toggle_shot_detail(state: TakeState, detail: ShotDetail) -> TakeState:
    if detail in state.shot_details:
        return replace(state, shot_details=state.shot_details - {detail})
    if detail == ShotDetail.MOS and state.is_non_slated:
        return state
    return replace(state, shot_details=state.shot_details | {detail})


def set_camera_rec(state: TakeState, field_id: str, active: bool) -> TakeState:
    rec = dict(state.camera_rec_state)
    rec[field_id] = bool(active)
    return replace(state, camera_rec_state=rec)


def disabled_fields(state: TakeState, camera_count: int) -> FrozenSet[str]:
    cameras = F.camera_field_ids(camera_count)
    disabled: Set[str] = set()
    c = state.classification
    if c in NON_SLATED:
        disabled.update(F.IDENTITY_FIELDS)
        disabled.update(cameras)
    elif c == Classification.WASTE:
        if not state.waste_options.camera:
            disabled.update(cameras)
        if not state.waste_options.sound:
            disabled.add(F.SOUND_FILE)
    elif c == Classification.INSERT:
        if state.insert_sound_speed is False:
            disabled.add(F.SOUND_FILE)
    if ShotDetail.MOS in state.shot_details and c not in NON_SLATED:
        disabled.add(F.SOUND_FILE)
    return frozenset(disabled)


def mandatory_fields(state: TakeState, camera_count: int) -> FrozenSet[str]:
    disabled = disabled_fields(state, camera_count)
    required: Set[str] = set()
    if not state.is_non_slated:
        required.update((F.SCENE, F.SHOT))
    if F.SOUND_FILE not in disabled:
        required.add(F.SOUND_FILE)
    for fid in F.camera_field_ids(camera_count):
        if fid not in disabled and (camera_count == 1 or state.is_rec_active(fid)):
            required.add(fid)
    return frozenset(required)


def validate_mandatory(
    values: Mapping[str, Any],
    disabled: FrozenSet[str],
    camera_rec_state: Optional[Mapping[str, bool]] = None,
    camera_count: int = 1,
) -> Set[str]:
    """Return the ids of mandatory fields left blank; an empty set means valid."""
    rec = camera_rec_state or {}
    non_slated = values.get(F.CLASSIFICATION) in {c.value for c in NON_SLATED}
    missing: Set[str] = set()
    if not non_slated:
        for fid in (F.SCENE, F.SHOT):
            if F.is_blank(values.get(fid)):
                missing.add(fid)
    if F.SOUND_FILE not in disabled and _file_blank(values, F.SOUND_FILE):
        missing.add(F.SOUND_FILE)
    for fid in F.camera_field_ids(camera_count):
        active = camera_count == 1 or rec.get(fid, True)
        if fid not in disabled and active and _file_blank(values, fid):
            missing.add(fid)
    return missing


def invalid_values(
    values: Mapping[str, Any],
    disabled: FrozenSet[str],
    camera_rec_state: Optional[Mapping[str, bool]] = None,
    camera_count: int = 1,
) -> Set[str]:
    """
    Return the ids of entered fields whose values cannot be read strictly:
    file fields that are not a number or a two-part range, and take numbers
    that are not digits.
    """
    rec = camera_rec_state or {}
    invalid: Set[str] = set()
    non_slated = values.get(F.CLASSIFICATION) in {c.value for c in NON_SLATED}
    take = values.get(F.TAKE)
    if not non_slated and F.TAKE not in disabled and not F.is_blank(take) and not str(take).strip().isdigit():
        invalid.add(F.TAKE)
    for fid in F.file_field_ids(camera_count):
        if fid in disabled:
            continue
        if F.is_camera_field(fid) and camera_count > 1 and not rec.get(fid, True):
            continue
        try:
            parse_field(values.get(fid))
        except InvalidFileNumber:
            invalid.add(fid)
        for key in F.range_keys(fid):
            raw = values.get(key)
            if not F.is_blank(raw) and not str(raw).strip().isdigit():
                invalid.add(fid)
    return invalid


def _file_blank(values: Mapping[str, Any], field_id: str) -> bool:
    if not F.is_blank(values.get(field_id)):
        return False
    lo, hi = F.range_keys(field_id)
    return F.is_blank(values.get(lo)) or F.is_blank(values.get(hi))


def reconcile_fields(
    values: Dict[str, Any],
    previous_disabled: FrozenSet[str],
    disabled: FrozenSet[str],
    refill: Callable[[str], Optional[str]],
) -> Dict[str, Any]:
    """
    Clear fields that just became disabled and re-derive file fields that just
    became enabled again.
    """
    out = dict(values)
    for fid in disabled - previous_disabled:
        if F.is_file_field(fid):
            out = clear_value(out, fid)
        else:
            out.pop(fid, None)
    for fid in previous_disabled - disabled:
        if F.is_file_field(fid) and F.is_blank(out.get(fid)):
            value = refill(fid)
            if value:
                out[fid] = value
    return out


def state_from_fields(values: Mapping[str, Any]) -> TakeState:
    """Rebuild the classification state of a persisted take."""
    raw_class = values.get(F.CLASSIFICATION) or None
    classification = Classification(raw_class) if raw_class else None
    details = frozenset(ShotDetail(d) for d in values.get(F.SHOT_DETAILS) or [])

    waste = WasteOptions()
    raw_waste = values.get(F.WASTE_OPTIONS)
    if isinstance(raw_waste, str) and raw_waste:
        raw_waste = json.loads(raw_waste)
    if isinstance(raw_waste, dict):
        waste = WasteOptions(camera=bool(raw_waste.get("camera")), sound=bool(raw_waste.get("sound")))

    raw_speed = values.get(F.INSERT_SOUND_SPEED)
    if isinstance(raw_speed, str):
        raw_speed = {"true": True, "false": False}.get(raw_speed.lower())

    return TakeState(
        classification=classification,
        shot_details=details,
        waste_options=waste,
        insert_sound_speed=raw_speed if isinstance(raw_speed, bool) else None,
        camera_rec_state=dict(values.get(F.CAMERA_REC_STATE) or {}),
        is_good_take=bool(values.get(F.IS_GOOD_TAKE)),
    )


def prepare_for_save(values: Mapping[str, Any], state: TakeState, camera_count: int) -> Dict[str, Any]:
    """
    Build the field map that gets persisted: disabled and REC-inactive fields
    are pruned and the classification state is stamped onto the map.
    """
    disabled = disabled_fields(state, camera_count)
    out = dict(values)
    for fid in disabled:
        if F.is_file_field(fid):
            out = clear_value(out, fid)
        else:
            out.pop(fid, None)
    if camera_count > 1:
        for fid in F.camera_field_ids(camera_count):
            if not state.is_rec_active(fid):
                out = clear_value(out, fid)
    for key in F.IDENTITY_FIELDS:
        if key in out:
            cleaned = str(out[key]).strip() if out[key] is not None else ""
            if cleaned:
                out[key] = cleaned
            else:
                out.pop(key)

    out[F.CLASSIFICATION] = state.classification.value if state.classification else None
    out[F.SHOT_DETAILS] = sorted(d.value for d in state.shot_details)
    out[F.IS_GOOD_TAKE] = state.is_good_take
    out[F.WASTE_OPTIONS] = (
        {"camera": state.waste_options.camera, "sound": state.waste_options.sound}
        if state.classification == Classification.WASTE
        else None
    )
    out[F.INSERT_SOUND_SPEED] = state.insert_sound_speed if state.classification == Classification.INSERT else None
    if camera_count > 1:
        out[F.CAMERA_REC_STATE] = {fid: state.is_rec_active(fid) for fid in F.camera_field_ids(camera_count)}
    else:
        out.pop(F.CAMERA_REC_STATE, None)
    return out
