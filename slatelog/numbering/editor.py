"""
Add/edit-take workflow: validate, detect duplicates, then either save normally
or shift the project and insert the take before the one it collides with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

from slatelog.logsheet.models import Project, Take
from slatelog.utils.logging_setup import log_context

from . import calculator
from . import fields as F
from .classification import (
    TakeState,
    disabled_fields,
    invalid_values,
    prepare_for_save,
    reconcile_fields,
    validate_mandatory,
)
from .duplicates import Candidate, DuplicateResult, detect_duplicate, location_label
from .errors import BlockingDuplicateError, PersistenceError, ShiftAbortedError, ValidationError
from .index import HistoryIndex
from .ranges import format_number, slot, write_value
from .shift import ShiftEngine

logger = logging.getLogger(__name__)


@dataclass
class SaveOutcome:
    """``take`` is set once persisted; otherwise ``duplicate`` awaits the user's insert-before decision."""

    take: Optional[Take] = None
    duplicate: DuplicateResult = field(default_factory=DuplicateResult)

    @property
    def saved(self) -> bool:
        return self.take is not None


@dataclass
class TakeEditor:
    store: Any

    def project(self) -> Project:
        project = self.store.get_project()
        if project is None:
            raise PersistenceError(f"Project {self.store.project_id} does not exist")
        return project

    def history(self, exclude_take_id: Optional[str] = None) -> HistoryIndex:
        return HistoryIndex.build(self.store.list_takes(), exclude={exclude_take_id} if exclude_take_id else None)

    def compute_auto_fill(self, camera_rec_state: Optional[Mapping[str, bool]] = None) -> Dict[str, Any]:
        return calculator.compute_auto_fill(self.project(), self.history(), camera_rec_state)

    def derive_disabled_fields(self, state: TakeState) -> FrozenSet[str]:
        return disabled_fields(state, self.project().camera_count)

    def change_field(self, values: Mapping[str, Any], field_id: str, value: Any) -> Dict[str, Any]:
        custom = len(self.project().settings.custom_fields)
        return calculator.cascade_field_change(values, field_id, value, custom_field_count=custom)

    def reconcile(self, values: Dict[str, Any], previous: TakeState, state: TakeState, take_id: Optional[str] = None) -> Dict[str, Any]:
        """Clear newly disabled fields and re-derive file fields that came back."""
        camera_count = self.project().camera_count
        history = self.history(exclude_take_id=take_id)

        def refill(field_id: str) -> Optional[str]:
            active = not F.is_camera_field(field_id) or camera_count == 1 or state.is_rec_active(field_id)
            return format_number(calculator.next_file_number(history, field_id, is_active=active))

        return reconcile_fields(
            values,
            disabled_fields(previous, camera_count),
            disabled_fields(state, camera_count),
            refill,
        )

    def validate(self, candidate: Candidate) -> None:
        camera_count = self.project().camera_count
        values = dict(candidate.values)
        values[F.CLASSIFICATION] = candidate.state.classification.value if candidate.state.classification else None
        disabled = disabled_fields(candidate.state, camera_count)
        rec = candidate.state.camera_rec_state
        missing = validate_mandatory(values, disabled, rec, camera_count)
        invalid = invalid_values(values, disabled, rec, camera_count) - missing
        if missing or invalid:
            order = [F.SCENE, F.SHOT, F.TAKE, F.SOUND_FILE, *F.camera_field_ids(camera_count)]
            raise ValidationError(
                missing,
                [F.field_label(fid) for fid in order if fid in missing],
                invalid,
                [F.field_label(fid) for fid in order if fid in invalid],
            )

    def detect_duplicate(self, candidate: Candidate) -> DuplicateResult:
        return detect_duplicate(
            candidate,
            self.history(exclude_take_id=candidate.take_id),
            camera_count=self.project().camera_count,
        )

    def _persist(self, candidate: Candidate, values: Mapping[str, Any], camera_count: int) -> Take:
        fields = prepare_for_save(values, candidate.state, camera_count)
        if candidate.take_id is None:
            return self.store.create_take(fields)
        if not self.store.update_take(candidate.take_id, fields):
            raise PersistenceError(f"Take {candidate.take_id} could not be updated")
        return self.store.get_take(candidate.take_id)

    def commit_normal_save(self, candidate: Candidate) -> Take:
        with log_context(project_id=self.store.project_id, take_id=candidate.take_id, operation="save"):
            take = self._persist(candidate, candidate.values, self.project().camera_count)
            logger.info("Saved take %s", take.take_id)
            return take

    def _take_number_cap(self, candidate: Candidate, target: Take) -> Optional[int]:
        # An edited take moving earlier in its own shot only pushes the takes it passes.
        if candidate.take_id is None:
            return None
        current = self.store.get_take(candidate.take_id)
        if current is None or current.take_number is None or target.take_number is None:
            return None
        if current.scene == target.scene and current.shot == target.shot and target.take_number < current.take_number:
            return current.take_number - 1
        return None

    def commit_insert_before(self, candidate: Candidate, result: DuplicateResult) -> Take:
        """
        Renumber the project so the candidate takes the slot of ``result.target``.

        Blocking checks are re-run first. Take-number shift, file shifts, slot
        adoption and the write of the candidate form one atomic unit: on any
        failure every write is rolled back and ``ShiftAbortedError`` is raised.
        """
        with log_context(project_id=self.store.project_id, take_id=candidate.take_id, operation="insert_before"):
            fresh = self.detect_duplicate(candidate)
            if fresh.is_blocking:
                raise BlockingDuplicateError(fresh)
            if not fresh.can_insert_before:
                logger.info("Conflict at %s no longer present; saving normally", location_label(result.target) if result.target else "-")
                return self.commit_normal_save(candidate)

            target = fresh.target
            camera_count = self.project().camera_count
            cap = self._take_number_cap(candidate, target)
            engine = ShiftEngine(self.store)
            values = dict(candidate.values)
            try:
                with self.store.atomic():
                    slated = not candidate.state.is_non_slated
                    if slated and target.scene and target.shot and target.take_number is not None:
                        engine.shift_take_numbers(
                            target.scene,
                            target.shot,
                            target.take_number,
                            1,
                            exclude_take_id=candidate.take_id,
                            max_take_number=cap,
                        )
                        values[F.SCENE] = target.scene
                        values[F.SHOT] = target.shot
                        values[F.TAKE] = str(target.take_number)
                    for shift in fresh.shifts:
                        engine.shift_file_numbers(
                            shift.field_id,
                            shift.from_number,
                            shift.delta,
                            exclude_take_id=candidate.take_id,
                        )
                        values = write_value(values, shift.field_id, slot(shift.from_number, shift.delta))
                    take = self._persist(candidate, values, camera_count)
            except Exception as e:
                logger.error("Insert before %s rolled back: %s", location_label(target), e)
                raise ShiftAbortedError(f"Could not insert the take before {location_label(target)}: {e}") from e

            logger.info("Inserted take %s before %s", take.take_id, location_label(target))
            return take

    def save(self, candidate: Candidate, insert_before: bool = False) -> SaveOutcome:
        """
        Full save flow. An eligible duplicate is returned unsaved unless the
        caller has already confirmed ``insert_before``.
        """
        self.validate(candidate)
        result = self.detect_duplicate(candidate)
        if result.is_blocking:
            raise BlockingDuplicateError(result)
        if result.can_insert_before:
            if not insert_before:
                return SaveOutcome(duplicate=result)
            return SaveOutcome(take=self.commit_insert_before(candidate, result), duplicate=result)
        return SaveOutcome(take=self.commit_normal_save(candidate))
