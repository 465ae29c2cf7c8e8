"""
Renumbering of take numbers and file sequences at or above an insertion point.

``plan_*`` functions are pure and return the new field maps by take id;
``ShiftEngine`` applies a plan through the persistence store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from slatelog.logsheet.models import Take

from .errors import PersistenceError
from .ranges import Blank, read_value, shifted, write_value

logger = logging.getLogger(__name__)

Plan = Dict[str, Dict[str, Any]]


def plan_take_shift(
    takes: Iterable[Take],
    scene: str,
    shot: str,
    from_take_number: int,
    delta: int = 1,
    exclude_take_id: Optional[str] = None,
    max_take_number: Optional[int] = None,
) -> Plan:
    plan: Plan = {}
    scene, shot = str(scene).strip(), str(shot).strip()
    for take in takes:
        if take.take_id == exclude_take_id:
            continue
        if take.scene != scene or take.shot != shot or take.take_number is None:
            continue
        n = take.take_number
        if n < from_take_number or (max_take_number is not None and n > max_take_number):
            continue
        fields = dict(take.fields)
        fields["takeNumber"] = str(n + delta)
        plan[take.take_id] = fields
    return plan


def plan_file_shift(
    takes: Iterable[Take],
    field_id: str,
    from_number: int,
    delta: int,
    exclude_take_id: Optional[str] = None,
) -> Plan:
    plan: Plan = {}
    for take in takes:
        if take.take_id == exclude_take_id:
            continue
        value = read_value(take.fields, field_id)
        if isinstance(value, Blank) or value.lower < from_number:
            continue
        plan[take.take_id] = write_value(take.fields, field_id, shifted(value, delta))
    return plan


@dataclass
class ShiftEngine:
    """Applies shift plans to one project's takes through the store."""

    store: Any

    def _apply(self, plan: Plan) -> int:
        for take_id, fields in plan.items():
            if not self.store.update_take(take_id, fields):
                raise PersistenceError(f"Failed to renumber take {take_id}")
        return len(plan)

    def shift_take_numbers(
        self,
        scene: str,
        shot: str,
        from_take_number: int,
        delta: int = 1,
        exclude_take_id: Optional[str] = None,
        max_take_number: Optional[int] = None,
    ) -> int:
        plan = plan_take_shift(
            self.store.list_takes(),
            scene,
            shot,
            from_take_number,
            delta,
            exclude_take_id=exclude_take_id,
            max_take_number=max_take_number,
        )
        logger.info("Shifting %d take number(s) in scene %s shot %s from %d by %+d", len(plan), scene, shot, from_take_number, delta)
        return self._apply(plan)

    def shift_file_numbers(
        self,
        field_id: str,
        from_number: int,
        delta: int,
        exclude_take_id: Optional[str] = None,
    ) -> int:
        plan = plan_file_shift(self.store.list_takes(), field_id, from_number, delta, exclude_take_id=exclude_take_id)
        logger.info("Shifting %d %s value(s) from %d by %+d", len(plan), field_id, from_number, delta)
        return self._apply(plan)
