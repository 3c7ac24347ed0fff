import json

from gameplay_models import SessionSummary
from high_scores import HighScoreStore


def _summary(session_id, score, max_combo=3):
    return SessionSummary(
        session_id=session_id,
        final_score=score,
        max_combo=max_combo,
        stats_by_tier={},
        end_reason="COMPLETED",
    )


def test_first_submission_is_a_record(tmp_path):
    store = HighScoreStore(store_path=tmp_path / "scores.json")
    result = store.submit(_summary("archery", 512.9))
    assert result.is_new_record
    assert result.best == 512
    assert store.best("archery") == 512
    assert json.loads((tmp_path / "scores.json").read_text(encoding="utf-8"))["archery"]["score"] == 512


def test_lower_score_keeps_previous_best(tmp_path):
    store = HighScoreStore(store_path=tmp_path / "scores.json")
    store.submit(_summary("melody:test", 900.0))
    result = store.submit(_summary("melody:test", 400.0))
    assert not result.is_new_record
    assert result.best == 900


def test_records_survive_a_new_store(tmp_path):
    path = tmp_path / "nested" / "scores.json"
    HighScoreStore(store_path=path).submit(_summary("pitch_pot", 330.0, max_combo=3))
    record = HighScoreStore(store_path=path).record("pitch_pot")
    assert record.score == 330
    assert record.max_combo == 3


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "scores.json"
    path.write_text("{broken", encoding="utf-8")
    store = HighScoreStore(store_path=path)
    assert store.best("archery") == 0
    assert store.submit(_summary("archery", 10.0)).is_new_record


def test_legacy_bare_numbers_are_read(tmp_path):
    path = tmp_path / "scores.json"
    path.write_text(json.dumps({"horse_taming": 1200, "junk": "x"}), encoding="utf-8")
    store = HighScoreStore(store_path=path)
    assert store.best("horse_taming") == 1200
    assert store.record("junk") is None


def test_entrypoint_submits_finished_sessions(tmp_path):
    import jianghu
    from config import AppConfig

    app_config = AppConfig.model_validate({"high_scores": {"path": str(tmp_path / "scores.json")}})
    store = jianghu.build_high_score_store(app_config)
    jianghu.submit_summary(store, _summary("fishing", 625.0))
    assert store.best("fishing") == 625
    jianghu.submit_summary(None, _summary("fishing", 999.0))

    disabled = AppConfig.model_validate({"high_scores": {"enabled": False}})
    assert jianghu.build_high_score_store(disabled) is None


def test_entrypoint_arguments():
    import jianghu

    parsed = jianghu.build_argument_parser().parse_args(["--game", "pitch_pot", "--rounds", "2", "--seed", "7"])
    assert parsed.game == "pitch_pot"
    assert parsed.rounds == 2
    assert parsed.seed == 7
