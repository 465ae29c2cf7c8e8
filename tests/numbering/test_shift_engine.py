import pytest

from slatelog.logsheet.models import Take
from slatelog.numbering.errors import PersistenceError
from slatelog.numbering.shift import ShiftEngine, plan_file_shift, plan_take_shift


def _take(n, **fields):
    return Take(take_id=f"t{n}", project_id="p", fields=fields, unique_id=n, created_at=float(n))


class FakeStore:
    def __init__(self, takes, fail_on=None):
        self.takes = {t.take_id: t for t in takes}
        self.fail_on = fail_on

    def list_takes(self):
        return list(self.takes.values())

    def update_take(self, take_id, fields):
        if take_id == self.fail_on:
            return False
        self.takes[take_id].fields = fields
        return True


def test_take_shift_only_moves_takes_at_or_above_threshold():
    takes = [
        _take(1, sceneNumber="1", shotNumber="1", takeNumber="1"),
        _take(2, sceneNumber="1", shotNumber="1", takeNumber="2"),
        _take(3, sceneNumber="1", shotNumber="1", takeNumber="3"),
        _take(4, sceneNumber="1", shotNumber="2", takeNumber="2"),
    ]
    plan = plan_take_shift(takes, "1", "1", 2)
    assert {tid: f["takeNumber"] for tid, f in plan.items()} == {"t2": "3", "t3": "4"}


def test_take_shift_respects_exclusion_and_cap():
    takes = [_take(n, sceneNumber="1", shotNumber="1", takeNumber=str(n)) for n in range(1, 6)]
    # Take 4 moves to slot 2: only takes 2 and 3 are pushed up.
    plan = plan_take_shift(takes, "1", "1", 2, exclude_take_id="t4", max_take_number=3)
    assert {tid: f["takeNumber"] for tid, f in plan.items()} == {"t2": "3", "t3": "4"}


def test_file_shift_moves_both_bounds_of_ranges():
    takes = [
        _take(1, cameraFile="0002"),
        _take(2, cameraFile="0003"),
        _take(3, cameraFile="0004-0006", camera1_from="0004", camera1_to="0006"),
        _take(4, soundFile="0009"),
    ]
    plan = plan_file_shift(takes, "cameraFile", 3, 1)
    assert set(plan) == {"t2", "t3"}
    assert plan["t2"]["cameraFile"] == "0004"
    assert plan["t3"] == {"cameraFile": "0005-0007", "camera1_from": "0005", "camera1_to": "0007"}


def test_file_shift_leaves_other_fields_alone():
    takes = [_take(1, cameraFile="0003", soundFile="0003", notesForTake="keep")]
    plan = plan_file_shift(takes, "soundFile", 1, 2)
    assert plan["t1"] == {"cameraFile": "0003", "soundFile": "0005", "notesForTake": "keep"}


def test_engine_applies_plan_through_store():
    store = FakeStore([_take(1, sceneNumber="1", shotNumber="1", takeNumber="1", soundFile="0001")])
    engine = ShiftEngine(store)
    assert engine.shift_take_numbers("1", "1", 1) == 1
    assert engine.shift_file_numbers("soundFile", 1, 1) == 1
    assert store.takes["t1"].fields["takeNumber"] == "2"
    assert store.takes["t1"].fields["soundFile"] == "0002"


def test_engine_raises_when_store_rejects_write():
    store = FakeStore([_take(1, soundFile="0001")], fail_on="t1")
    with pytest.raises(PersistenceError):
        ShiftEngine(store).shift_file_numbers("soundFile", 1, 1)
