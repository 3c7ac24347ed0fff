import pytest

from gameplay_models import (
    Entity,
    EntityKind,
    InputEvent,
    InputKind,
    NotePayload,
    NoteType,
    PotPayload,
    PotType,
    PromptPayload,
    Tier,
)
from judge import (
    InputClassifier,
    JudgementWindows,
    MatchMode,
    ScoreState,
    StrayInputPolicy,
    classify_commit,
)

HIT_LINE_Y = 650.0


def _windows():
    return JudgementWindows.simple(perfect=30.0, good=60.0, miss_cutoff=90.0, search_range=100.0)


def _note(y, lane=0, entity_id=1, note_type=NoteType.TAP):
    return Entity(entity_id=entity_id, kind=EntityKind.NOTE, payload=NotePayload(lane=lane, note_type=note_type), y=y)


def _press(key="s"):
    return InputEvent(kind=InputKind.KEY_DOWN, key=key)


def _note_classifier(stray_policy=StrayInputPolicy.IGNORE):
    lanes = {"s": 0, "d": 1}
    return InputClassifier(
        _windows(),
        deviation_of=lambda entity: abs(entity.y - HIT_LINE_Y),
        signed_delta_of=lambda entity: entity.y - HIT_LINE_Y,
        corresponds=lambda event, entity: lanes.get(event.key) == entity.payload.lane,
        stray_policy=stray_policy,
    )


@pytest.mark.parametrize(
    "deviation, expected",
    [
        (5.0, Tier.PERFECT),
        (29.9, Tier.PERFECT),
        (30.0, Tier.GOOD),
        (75.0, Tier.GOOD),
        (89.9, Tier.GOOD),
        (90.0, None),
        (95.0, None),
    ],
)
def test_deviation_tiers(deviation, expected):
    assert _windows().classify_deviation(deviation) == expected


def test_tiers_never_improve_as_deviation_grows():
    windows = JudgementWindows(
        thresholds=((Tier.PERFECT, 10.0), (Tier.GREAT, 30.0)),
        miss_cutoff=55.0,
        fallback_tier=Tier.GOOD,
    )
    order = [Tier.PERFECT, Tier.GREAT, Tier.GOOD, None]
    previous_rank = 0
    deviation = 0.0
    while deviation < 70.0:
        rank = order.index(windows.classify_deviation(deviation))
        assert rank >= previous_rank
        previous_rank = rank
        deviation += 0.5


def test_fallback_tier_covers_gap_to_cutoff():
    windows = JudgementWindows(
        thresholds=((Tier.PERFECT, 10.0), (Tier.GREAT, 30.0)),
        miss_cutoff=55.0,
        fallback_tier=Tier.GOOD,
    )
    assert windows.classify_deviation(40.0) is Tier.GOOD
    assert windows.search_range == pytest.approx(55.0 * 1.25)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(thresholds=(), miss_cutoff=10.0),
        dict(thresholds=((Tier.MISS, 5.0),), miss_cutoff=10.0),
        dict(thresholds=((Tier.PERFECT, 30.0), (Tier.GOOD, 20.0)), miss_cutoff=40.0),
        dict(thresholds=((Tier.PERFECT, 30.0),), miss_cutoff=30.0),
        dict(thresholds=((Tier.PERFECT, 30.0),), miss_cutoff=40.0, search_range=35.0),
        dict(thresholds=((Tier.PERFECT, 30.0),), miss_cutoff=40.0, fallback_tier=Tier.BROKEN_HOLD),
    ],
)
def test_invalid_windows_rejected(kwargs):
    with pytest.raises(ValueError):
        JudgementWindows(**kwargs)


def test_press_matches_entity_in_its_lane():
    classifier = _note_classifier()
    note = _note(HIT_LINE_Y - 5.0)
    judgement = classifier.classify(_press("s"), [note], now_ms=1234.0)
    assert judgement is not None
    assert judgement.tier is Tier.PERFECT
    assert judgement.entity is note
    assert judgement.deviation == pytest.approx(5.0)
    assert judgement.delta == pytest.approx(-5.0)
    assert judgement.time_ms == pytest.approx(1234.0)
    assert note.alive


def test_press_in_other_lane_is_ignored():
    assert _note_classifier().classify(_press("d"), [_note(HIT_LINE_Y)]) is None


def test_nearest_candidate_wins():
    far = _note(HIT_LINE_Y - 50.0, entity_id=1)
    near = _note(HIT_LINE_Y + 10.0, entity_id=2)
    judgement = _note_classifier().classify(_press(), [far, near])
    assert judgement.entity is near
    assert judgement.tier is Tier.PERFECT


def test_outside_cutoff_is_no_match_while_early():
    note = _note(HIT_LINE_Y - 95.0)
    assert _note_classifier().classify(_press(), [note]) is None
    assert _note_classifier(StrayInputPolicy.CONSUME_AS_MISS).classify(_press(), [note]) is None
    assert note.alive


def test_late_stray_press_consumed_as_miss_under_policy():
    note = _note(HIT_LINE_Y + 95.0)
    assert _note_classifier().classify(_press(), [note]) is None
    judgement = _note_classifier(StrayInputPolicy.CONSUME_AS_MISS).classify(_press(), [note])
    assert judgement.tier is Tier.MISS
    assert not judgement.implicit


def test_expired_entities_become_implicit_misses_once():
    classifier = _note_classifier()
    expired = _note(HIT_LINE_Y + 120.0, entity_id=1)
    pending = _note(HIT_LINE_Y - 200.0, entity_id=2)
    is_expired = lambda entity: entity.y - HIT_LINE_Y > 90.0
    misses = classifier.collect_expired([expired, pending], is_expired, now_ms=50.0)
    assert [m.entity for m in misses] == [expired]
    assert misses[0].tier is Tier.MISS and misses[0].implicit
    assert not expired.alive
    assert classifier.collect_expired([expired, pending], is_expired) == []


def test_dead_entities_are_not_candidates():
    note = _note(HIT_LINE_Y)
    note.alive = False
    assert _note_classifier().classify(_press(), [note]) is None


def _prompt(key, distance, entity_id):
    return Entity(
        entity_id=entity_id,
        kind=EntityKind.PROMPT,
        payload=PromptPayload(key=key, angle_radians=0.0),
        distance=distance,
    )


def _front_classifier(stray_policy):
    ring = 250.0
    return InputClassifier(
        JudgementWindows(thresholds=((Tier.PERFECT, 10.0), (Tier.GREAT, 30.0)), miss_cutoff=55.0, fallback_tier=Tier.GOOD),
        deviation_of=lambda entity: abs(entity.distance - ring),
        signed_delta_of=lambda entity: entity.distance - ring,
        corresponds=lambda event, entity: event.key == entity.payload.key,
        match_mode=MatchMode.FRONT_OF_QUEUE,
        stray_policy=stray_policy,
    )


def test_front_of_queue_only_judges_the_oldest_prompt():
    front = _prompt("w", 248.0, 1)
    behind = _prompt("a", 250.0, 2)
    classifier = _front_classifier(StrayInputPolicy.IGNORE)
    assert classifier.classify(_press("a"), [front, behind]) is None
    judgement = classifier.classify(_press("w"), [front, behind])
    assert judgement.entity is front and judgement.tier is Tier.PERFECT


def test_front_of_queue_wrong_key_in_window_is_a_miss_when_consuming():
    front = _prompt("w", 240.0, 1)
    judgement = _front_classifier(StrayInputPolicy.CONSUME_AS_MISS).classify(_press("s"), [front])
    assert judgement.tier is Tier.MISS
    assert judgement.entity is front


def test_front_of_queue_early_press_keeps_prompt_reserved():
    front = _prompt("w", 100.0, 1)
    assert _front_classifier(StrayInputPolicy.CONSUME_AS_MISS).classify(_press("w"), [front]) is None


def test_release_before_tail_breaks_the_hold():
    classifier = _note_classifier()
    hold = _note(HIT_LINE_Y, note_type=NoteType.HOLD)
    release = InputEvent(kind=InputKind.KEY_UP, key="s")
    result = classifier.classify_release(release, [hold], remaining_extent_of=lambda entity: 120.0, tolerance=40.0)
    assert result.entity is hold
    assert result.judgement.tier is Tier.BROKEN_HOLD

    result = classifier.classify_release(release, [hold], remaining_extent_of=lambda entity: 20.0, tolerance=40.0)
    assert result.entity is hold
    assert result.judgement is None

    assert classifier.classify_release(InputEvent(kind=InputKind.KEY_UP, key="d"), [hold], remaining_extent_of=lambda entity: 0.0, tolerance=40.0) is None


def _pot(charge, entity_id):
    payload = PotPayload(pot_type=PotType.MOUSE, bounce_bounds=(0.0, 0.0, 800.0, 600.0), charge=charge)
    return Entity(entity_id=entity_id, kind=EntityKind.POT, payload=payload)


def _reset_charge(entity):
    entity.payload.charge = 0.0


def test_dual_commit_fails_and_resets_every_linked_pot():
    first = _pot(100.0, 1)
    second = _pot(40.0, 2)
    score = ScoreState()
    score.apply_success(Tier.PERFECT, 100.0, 0.1)
    judgement = classify_commit(
        [first, second],
        is_satisfied=lambda entity: entity.payload.charge >= 100.0,
        reset=_reset_charge,
    )
    assert judgement.tier is Tier.MISS
    assert judgement.entity is second
    score.apply_failure(judgement.tier)
    assert first.payload.charge == 0.0
    assert second.payload.charge == 0.0
    assert score.combo == 0
    assert score.max_combo == 1


def test_commit_succeeds_when_all_linked_are_satisfied():
    pots = [_pot(100.0, 1), _pot(100.0, 2)]
    judgement = classify_commit(pots, is_satisfied=lambda entity: entity.payload.charge >= 100.0, reset=_reset_charge)
    assert judgement.tier is Tier.PERFECT
    assert all(pot.payload.charge == 100.0 for pot in pots)
    assert classify_commit([], is_satisfied=lambda entity: True, reset=_reset_charge) is None


def test_score_uses_combo_after_increment():
    score = ScoreState()
    assert score.apply_success(Tier.PERFECT, 100.0, 0.1) == pytest.approx(110.0)
    assert score.apply_success(Tier.GOOD, 100.0, 0.1) == pytest.approx(120.0)
    score.apply_failure(Tier.MISS)
    assert score.combo == 0
    assert score.max_combo == 2
    assert score.count(Tier.PERFECT) == 1
    assert score.count(Tier.MISS) == 1
    score.add_bonus(0.5)
    assert score.display_score() == 230
    assert score.combo == 0
