from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from slatelog.logsheet.context import build_shot_context, format_shot_context
from slatelog.logsheet.models import Take
from slatelog.logsheet.service import LogSheetService, init_project_logsheet
from slatelog.numbering.classification import (
    Classification,
    ShotDetail,
    TakeState,
    WasteOptions,
    state_from_fields,
)
from slatelog.numbering.duplicates import Candidate, DuplicateResult
from slatelog.numbering.errors import BlockingDuplicateError, NumberingError, ShiftAbortedError, ValidationError
from slatelog.utils.logging_setup import log_context

from .base import EditorResponse, setup_logger

logger = setup_logger(__name__)

_services: Dict[str, LogSheetService] = {}


def _svc(project_id: str) -> LogSheetService:
    """
    Keep a per-process cache of open services. This makes repeated calls fast.
    """
    if project_id not in _services:
        _services[project_id] = LogSheetService.open(project_id=project_id)
    return _services[project_id]


def close_all() -> None:
    for svc in _services.values():
        svc.close()
    _services.clear()


def _take_dict(take: Take) -> Dict[str, Any]:
    return {
        "take_id": take.take_id,
        "unique_id": take.unique_id,
        "fields": dict(take.fields),
        "created_at": take.created_at,
        "updated_at": take.updated_at,
    }


def _duplicate_dict(result: DuplicateResult) -> Dict[str, Any]:
    return {
        "kind": result.kind.value,
        "reason": result.reason.value if result.reason else None,
        "target_take_id": result.target.take_id if result.target else None,
        "fields": [
            {"field_id": c.field_id, "conflict_type": c.conflict_type.value}
            for c in result.conflicts
        ],
        "suggested_take_number": result.suggested_take_number,
    }


def _state(state: Optional[Dict[str, Any]]) -> TakeState:
    """Build a ``TakeState`` from the UI's plain dict form."""
    if not state:
        return TakeState()
    raw_class = state.get("classification")
    waste = state.get("waste_options") or {}
    return TakeState(
        classification=Classification(raw_class) if raw_class else None,
        shot_details=frozenset(ShotDetail(d) for d in state.get("shot_details") or []),
        waste_options=WasteOptions(camera=bool(waste.get("camera")), sound=bool(waste.get("sound"))),
        insert_sound_speed=state.get("insert_sound_speed"),
        camera_rec_state=dict(state.get("camera_rec_state") or {}),
        is_good_take=bool(state.get("is_good_take")),
    )


def init_project(project_id: str) -> Dict[str, Any]:
    """
    Initialize a project's log sheet DB (creates schema if missing).
    """
    return init_project_logsheet(project_id=project_id)


def create_project(
    project_id: str,
    name: str,
    camera_count: int = 1,
    enabled_fields: Optional[List[str]] = None,
    custom_fields: Optional[List[str]] = None,
) -> EditorResponse:
    try:
        project = _svc(project_id).create_project(
            name=name,
            camera_count=camera_count,
            enabled_fields=enabled_fields,
            custom_fields=custom_fields,
        )
    except ValueError as e:
        return EditorResponse(success=False, message=str(e))
    return EditorResponse(
        success=True,
        message=f"Created project {project.name}",
        content={"project_id": project.project_id, "settings": asdict(project.settings)},
    )


def new_take_defaults(project_id: str, camera_rec_state: Optional[Dict[str, bool]] = None) -> EditorResponse:
    """
    Pre-filled field values for a new take.
    """
    try:
        values = _svc(project_id).editor().compute_auto_fill(camera_rec_state)
    except NumberingError as e:
        return EditorResponse(success=False, message=str(e))
    return EditorResponse(success=True, content=values)


def save_take(
    project_id: str,
    values: Dict[str, Any],
    state: Optional[Dict[str, Any]] = None,
    take_id: Optional[str] = None,
    insert_before: bool = False,
) -> EditorResponse:
    """
    Validate and save a new (``take_id`` unset) or edited take.

    An insert-before decision is returned with ``needs_confirmation=True``;
    call again with ``insert_before=True`` once the user accepts it.
    """
    editor = _svc(project_id).editor()
    with log_context(project_id=project_id, take_id=take_id, operation="save_take"):
        try:
            if take_id and state is None:
                existing = editor.store.get_take(take_id)
                take_state = state_from_fields(existing.fields) if existing else TakeState()
            else:
                take_state = _state(state)
        except ValueError as e:
            logger.info("Rejected take state: %s", e)
            return EditorResponse(success=False, message=f"Invalid take state: {e}")
        candidate = Candidate(values=dict(values), state=take_state, take_id=take_id)

        try:
            outcome = editor.save(candidate, insert_before=insert_before)
        except ValidationError as e:
            return EditorResponse(
                success=False,
                message=str(e),
                missing_fields=sorted(e.missing),
                invalid_fields=sorted(e.invalid),
            )
        except BlockingDuplicateError as e:
            logger.info("Save refused: %s", e)
            return EditorResponse(success=False, message=str(e), duplicate=_duplicate_dict(e.result))
        except ShiftAbortedError as e:
            logger.error("Insert-before failed: %s", e)
            return EditorResponse(success=False, message="Failed to save the take. No changes were made.")
        except NumberingError as e:
            logger.error("Save failed: %s", e)
            return EditorResponse(success=False, message=str(e))

    if not outcome.saved:
        return EditorResponse(
            success=False,
            message=outcome.duplicate.message,
            needs_confirmation=True,
            duplicate=_duplicate_dict(outcome.duplicate),
        )
    return EditorResponse(
        success=True,
        message="Take saved",
        take_id=outcome.take.take_id,
        content=_take_dict(outcome.take),
    )


def delete_take(project_id: str, take_id: str) -> EditorResponse:
    deleted = _svc(project_id).delete_take(take_id)
    if not deleted:
        return EditorResponse(success=False, message=f"Take {take_id} not found", take_id=take_id)
    return EditorResponse(success=True, message="Take deleted", take_id=take_id)


def list_takes(project_id: str) -> Dict[str, Any]:
    return {"project_id": project_id, "takes": [_take_dict(t) for t in _svc(project_id).list_takes()]}


def shot_summary(project_id: str, scene: Optional[str] = None, shot: Optional[str] = None) -> str:
    return format_shot_context(build_shot_context(_svc(project_id), scene=scene, shot=shot))
