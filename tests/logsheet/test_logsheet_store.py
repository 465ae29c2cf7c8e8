import pytest

from slatelog.logsheet.models import ProjectSettings
from slatelog.logsheet.service import LogSheetService
from slatelog.logsheet.store import LogSheetStore


def _store(tmp_path, project_id="shoot"):
    store = LogSheetStore.open(project_id, db_path=tmp_path / "logsheet.db")
    store.create_project("Shoot", ProjectSettings(camera_count=2, custom_fields=["Lens"]))
    return store


def test_project_round_trip(tmp_path):
    store = _store(tmp_path)
    project = store.get_project()
    assert project.name == "Shoot"
    assert project.camera_count == 2
    assert project.settings.custom_fields == ["Lens"]
    assert "soundFile" in project.settings.enabled_fields


def test_only_cosmetics_can_change(tmp_path):
    store = _store(tmp_path)
    assert store.update_project_cosmetics(name="Renamed", logo_uri="file:///logo.png")
    project = store.get_project()
    assert project.name == "Renamed"
    assert project.logo_uri == "file:///logo.png"
    assert project.camera_count == 2


def test_create_take_assigns_unique_ids_and_normalizes(tmp_path):
    store = _store(tmp_path)
    first = store.create_take({"sceneNumber": " 1 ", "shotNumber": "1", "takeNumber": ""})
    second = store.create_take({"sceneNumber": "1"})
    assert (first.unique_id, second.unique_id) == (1, 2)
    assert first.fields == {"sceneNumber": "1", "shotNumber": "1"}
    assert [t.take_id for t in store.list_takes()] == [first.take_id, second.take_id]


def test_update_take_reports_missing(tmp_path):
    store = _store(tmp_path)
    take = store.create_take({"sceneNumber": "1"})
    assert store.update_take(take.take_id, {"sceneNumber": "2"})
    assert store.get_take(take.take_id).scene == "2"
    assert not store.update_take("missing", {"sceneNumber": "2"})


def test_delete_take_closes_take_number_gap(tmp_path):
    store = _store(tmp_path)
    takes = [store.create_take({"sceneNumber": "1", "shotNumber": "1", "takeNumber": str(n)}) for n in (1, 2, 3)]
    other = store.create_take({"sceneNumber": "1", "shotNumber": "2", "takeNumber": "3"})
    assert store.delete_take(takes[0].take_id)
    assert not store.delete_take(takes[0].take_id)
    assert store.get_take(takes[1].take_id).take_number == 1
    assert store.get_take(takes[2].take_id).take_number == 2
    assert store.get_take(other.take_id).take_number == 3


def test_atomic_rolls_back_every_write(tmp_path):
    store = _store(tmp_path)
    take = store.create_take({"sceneNumber": "1"})
    with pytest.raises(RuntimeError):
        with store.atomic():
            store.update_take(take.take_id, {"sceneNumber": "9"})
            store.create_take({"sceneNumber": "2"})
            raise RuntimeError("boom")
    assert store.get_take(take.take_id).scene == "1"
    assert len(store.list_takes()) == 1


def test_atomic_commits_on_success(tmp_path):
    store = _store(tmp_path)
    with store.atomic():
        store.create_take({"sceneNumber": "1"})
    store.close()
    reopened = LogSheetStore.open("shoot", db_path=tmp_path / "logsheet.db")
    assert len(reopened.list_takes()) == 1


def test_service_validates_project_arguments(tmp_path):
    svc = LogSheetService.open("films", db_path=tmp_path / "films.db")
    with pytest.raises(ValueError):
        svc.create_project("Films", camera_count=11)
    with pytest.raises(ValueError):
        svc.create_project("  ", camera_count=1)
    svc.create_project("Films", camera_count=3)
    with pytest.raises(ValueError):
        svc.create_project("Again")
    with pytest.raises(ValueError):
        svc.rename_project(name=" ")
    assert svc.get_project().camera_count == 3


def test_project_id_is_made_filename_safe(tmp_path, monkeypatch):
    monkeypatch.setenv("SLATELOG_DATA_DIR", str(tmp_path))
    from slatelog.config.config import get_config

    get_config.cache_clear()
    try:
        store = LogSheetStore.open("my shoot/day 1")
        assert store.project_id == "my_shoot_day_1"
        assert store.db_path == tmp_path / "my_shoot_day_1" / "logsheet.db"
        store.close()
    finally:
        get_config.cache_clear()
