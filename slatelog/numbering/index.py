from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from slatelog.logsheet.models import Take

from .ranges import Blank, FileValue, read_value

ShotKey = Tuple[str, str]


@dataclass
class HistoryIndex:
    """
    One pass over a project's takes, built once per operation and passed
    explicitly to the calculator, detector and shift planner.
    """

    takes: List[Take]
    by_id: Dict[str, Take] = field(default_factory=dict)
    by_shot: Dict[ShotKey, List[Take]] = field(default_factory=dict)
    _by_field: Dict[str, List[Tuple[FileValue, Take]]] = field(default_factory=dict)

    @classmethod
    def build(cls, takes: Iterable[Take], exclude: Optional[Set[str]] = None) -> "HistoryIndex":
        exclude = exclude or set()
        kept = [t for t in takes if t.take_id not in exclude]
        # Creation order; unique_id breaks ties between takes created in the same instant.
        kept.sort(key=lambda t: (t.created_at, t.unique_id))
        index = cls(takes=kept)
        for take in kept:
            index.by_id[take.take_id] = take
            if take.scene and take.shot:
                index.by_shot.setdefault((take.scene, take.shot), []).append(take)
        return index

    def __len__(self) -> int:
        return len(self.takes)

    def shot_takes(self, scene: Optional[str], shot: Optional[str]) -> List[Take]:
        if not scene or not shot:
            return []
        return self.by_shot.get((scene.strip(), shot.strip()), [])

    def values(self, field_id: str) -> List[Tuple[FileValue, Take]]:
        """Non-blank values held for ``field_id``, ordered by lower bound."""
        if field_id not in self._by_field:
            entries = []
            for take in self.takes:
                value = read_value(take.fields, field_id)
                if not isinstance(value, Blank):
                    entries.append((value, take))
            entries.sort(key=lambda e: (e[0].lower, e[1].created_at, e[1].unique_id))
            self._by_field[field_id] = entries
        return self._by_field[field_id]

    def latest(self) -> Optional[Take]:
        return self.takes[-1] if self.takes else None

    def newest_first(self) -> List[Take]:
        return list(reversed(self.takes))
