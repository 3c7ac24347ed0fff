import json

import pytest

import test_chart
from chart_models import DIFFICULTY_ORDER, SongCatalog, catalog_from_dict, load_catalog
from gameplay_models import NoteType


def _song_payload(song_id, difficulty="Novice"):
    return {
        "id": song_id,
        "title": song_id.title(),
        "duration": 90,
        "difficulty": difficulty,
        "notes": [{"t": 1000, "l": 0}, {"t": 1500, "l": 2, "type": "hold", "len": 400}],
        "backing": [{"t": 0, "chord": [0, 3]}],
    }


def test_catalog_from_dict_builds_events():
    catalog = catalog_from_dict({"songs": [_song_payload("molihua")]})
    song = catalog.find("molihua")
    assert song.duration_ms == 90_000.0
    events = song.note_events()
    assert events[1].note_type is NoteType.HOLD
    assert events[1].length_ms == 400.0
    assert events[0].length_ms == 0.0
    assert song.backing_cues()[0].chord == (0, 3)


@pytest.mark.parametrize(
    "payload",
    [
        {"songs": [_song_payload("a"), _song_payload("a")]},
        {"songs": [dict(_song_payload("a"), id="  ")]},
        {"songs": [dict(_song_payload("a"), notes=[{"t": 0, "l": 0, "type": "hold"}])]},
        {"songs": [dict(_song_payload("a"), backing=[{"t": 0, "chord": [-1]}])]},
    ],
)
def test_invalid_catalogs_rejected(payload):
    with pytest.raises(ValueError):
        catalog_from_dict(payload)


def test_sorted_by_difficulty():
    names = list(DIFFICULTY_ORDER)
    catalog = SongCatalog.model_validate(
        {"songs": [_song_payload("late", names[-1]), _song_payload("early", names[0])]}
    )
    assert [song.id for song in catalog.sorted_by_difficulty()] == ["early", "late"]


def test_load_catalog_from_file(tmp_path):
    catalog_path = tmp_path / "songs.json"
    catalog_path.write_text(json.dumps({"songs": [_song_payload("molihua")]}), encoding="utf-8")
    assert load_catalog(catalog_path).song_ids() == ["molihua"]

    catalog_path.write_text("not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(catalog_path)

    with pytest.raises(FileNotFoundError):
        load_catalog(tmp_path / "missing.json")


def test_built_in_test_song_covers_every_lane():
    song = test_chart.build_test_song()
    assert {note.l for note in song.notes} == set(range(6))
    assert any(note.type == NoteType.HOLD for note in song.notes)
    assert song.duration_ms >= max(note.t for note in song.notes)
