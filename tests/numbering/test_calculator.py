from slatelog.logsheet.models import Project, ProjectSettings, Take
from slatelog.numbering.calculator import (
    cascade_field_change,
    compute_auto_fill,
    highest_file_number,
    last_shot_description,
    next_file_number,
    next_take_number,
)


def _take(n, **fields):
    return Take(take_id=f"t{n}", project_id="p", fields=fields, unique_id=n, created_at=float(n))


def _project(camera_count=1, **kwargs):
    return Project(project_id="p", name="Demo", settings=ProjectSettings(camera_count=camera_count, **kwargs))


def test_next_take_number_scoped_to_scene_and_shot():
    history = [
        _take(1, sceneNumber="1", shotNumber="1", takeNumber="1"),
        _take(2, sceneNumber="1", shotNumber="1", takeNumber="4"),
        _take(3, sceneNumber="1", shotNumber="2", takeNumber="9"),
    ]
    assert next_take_number(history, "1", "1") == 5
    assert next_take_number(history, "1", "2") == 10
    assert next_take_number(history, "2", "1") == 1


def test_highest_file_number_covers_ranges_and_order():
    history = [
        _take(1, soundFile="0003"),
        _take(2, soundFile="0004-0008", sound_from="0004", sound_to="0008"),
        _take(3, soundFile="0002"),
    ]
    assert highest_file_number(history, "soundFile") == 8
    assert highest_file_number(list(reversed(history)), "soundFile") == 8
    assert next_file_number(history, "soundFile") == 9
    assert next_file_number([], "soundFile") == 1


def test_inactive_camera_reuses_last_recorded_value():
    # Multi-camera project, camera 2 paused: its slate number is repeated.
    history = [
        _take(1, cameraFile1="0001", cameraFile2="0001", cameraFile3="0001"),
        _take(2, cameraFile1="0002", cameraFile2="0002", cameraFile3="0002"),
        _take(3, cameraFile1="0003", cameraFile3="0003"),
    ]
    assert next_file_number(history, "cameraFile1", is_active=True) == 4
    assert next_file_number(history, "cameraFile2", is_active=False) == 2
    assert next_file_number(history, "cameraFile3", is_active=True) == 4


def test_inactive_camera_without_history_falls_back_to_highest():
    assert next_file_number([], "cameraFile2", is_active=False) == 0


def test_auto_fill_for_empty_project():
    values = compute_auto_fill(_project(camera_count=2), [])
    assert values == {
        "sceneNumber": "1",
        "shotNumber": "1",
        "takeNumber": "1",
        "soundFile": "0001",
        "cameraFile1": "0001",
        "cameraFile2": "0001",
    }


def test_auto_fill_skips_sound_when_disabled():
    project = _project(enabled_fields={"sceneNumber", "shotNumber", "takeNumber", "cameraFile"})
    assert "soundFile" not in compute_auto_fill(project, [])


def test_auto_fill_continues_from_last_slated_take():
    history = [
        _take(
            1,
            episodeNumber="2",
            sceneNumber="5",
            shotNumber="3",
            takeNumber="2",
            cardNumber="A001",
            cameraFile="0010",
            soundFile="0020",
            descriptionOfShot="Wide on the pier",
        ),
        _take(2, classification="SFX", soundFile="0021", cardNumber="A002"),
    ]
    values = compute_auto_fill(_project(), history)
    assert values["episodeNumber"] == "2"
    assert values["sceneNumber"] == "5"
    assert values["shotNumber"] == "3"
    assert values["takeNumber"] == "3"
    assert values["cardNumber"] == "A002"
    assert values["soundFile"] == "0022"
    assert values["cameraFile"] == "0011"
    assert values["descriptionOfShot"] == "Wide on the pier"


def test_auto_fill_respects_rec_state():
    history = [_take(1, sceneNumber="1", shotNumber="1", takeNumber="1", cameraFile1="0004", cameraFile2="0007")]
    values = compute_auto_fill(_project(camera_count=2), history, {"cameraFile2": False})
    assert values["cameraFile1"] == "0005"
    assert values["cameraFile2"] == "0007"


def test_last_shot_description_walks_back():
    history = [
        _take(1, sceneNumber="1", shotNumber="1", descriptionOfShot="CU"),
        _take(2, sceneNumber="1", shotNumber="1"),
    ]
    assert last_shot_description(history, "1", "1") == "CU"
    assert last_shot_description(history, "1", "2") is None


def test_cascade_episode_change_resets_everything_below():
    values = {
        "episodeNumber": "1",
        "sceneNumber": "4",
        "shotNumber": "2",
        "takeNumber": "7",
        "descriptionOfShot": "MS",
        "notesForTake": "boom in shot",
        "custom_0": "x",
    }
    out = cascade_field_change(values, "episodeNumber", "2", custom_field_count=1)
    assert out["episodeNumber"] == "2"
    assert out["takeNumber"] == "1"
    for key in ("sceneNumber", "shotNumber", "descriptionOfShot", "notesForTake", "custom_0"):
        assert out[key] == ""


def test_cascade_scene_change_clears_shot_and_take():
    out = cascade_field_change({"sceneNumber": "1", "shotNumber": "2", "takeNumber": "3"}, "sceneNumber", "2")
    assert out["shotNumber"] == ""
    assert out["takeNumber"] == ""


def test_cascade_shot_change_keeps_description_when_unchanged():
    values = {"shotNumber": "2", "takeNumber": "3", "descriptionOfShot": "WS"}
    assert cascade_field_change(values, "shotNumber", "2")["descriptionOfShot"] == "WS"
    assert cascade_field_change(values, "shotNumber", "3")["descriptionOfShot"] == ""
