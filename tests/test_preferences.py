# tests/test_preferences.py
import pytest

from hn_digest.preferences import PreferenceModel, decayed_weight


@pytest.mark.parametrize("weight,rate,floor,expected", [
    (2.0, 0.5, 0.1, 1.0),
    (1.0, 0.02, 0.1, 0.98),
    (0.1, 0.5, 0.1, 0.1),
    (0.0, 0.3, 0.2, 0.2),
    (5.0, 0.0, 0.1, 5.0),
])
def test_decayed_weight(weight, rate, floor, expected):
    assert decayed_weight(weight, rate, floor) == pytest.approx(expected)


def test_iterated_decay_never_goes_below_floor():
    w = 3.0
    for _ in range(500):
        w = decayed_weight(w, 0.2, 0.1)
        assert w >= 0.1
    assert w == pytest.approx(0.1)


def test_boost_unseen_tag_starts_at_baseline(store):
    prefs = PreferenceModel(store)
    assert prefs.boost(["rust"], 0.2) == []
    tw = store.get_tag("rust")
    assert tw.weight == pytest.approx(1.2)
    assert tw.count == 1


def test_boost_accumulates_and_counts(store):
    prefs = PreferenceModel(store)
    prefs.boost(["rust"], 0.2)
    prefs.boost(["rust", "go"], 0.2)
    prefs.boost(["rust"], 0.5)
    rust = store.get_tag("rust")
    assert rust.weight == pytest.approx(1.9)
    assert rust.count == 3
    assert store.get_tag("go").count == 1


def test_boost_ignores_duplicate_tags_in_one_call(store):
    PreferenceModel(store).boost(["ai", "ai"], 0.2)
    assert store.get_tag("ai").count == 1


def test_boost_continues_after_a_failing_tag(store, mocker):
    real_boost = store.boost

    def flaky(tag, delta):
        if tag == "bad":
            raise RuntimeError("disk full")
        real_boost(tag, delta)

    mocker.patch.object(store, "boost", side_effect=flaky)
    failed = PreferenceModel(store).boost(["a", "bad", "c"], 0.2)
    assert failed == ["bad"]
    assert store.get_tag("a").weight == pytest.approx(1.2)
    assert store.get_tag("c").weight == pytest.approx(1.2)
    assert store.get_tag("bad") is None


def test_decay_applies_floor_to_stored_weights(store):
    prefs = PreferenceModel(store)
    prefs.boost(["a"], 1.0)        # 2.0
    store.boost("b", -0.95)        # 0.05, below the floor
    assert prefs.decay(0.5, 0.1) is True
    weights = prefs.weights()
    assert weights["a"] == pytest.approx(1.0)
    assert weights["b"] == pytest.approx(0.1)


def test_decay_on_empty_mapping_is_noop(store):
    prefs = PreferenceModel(store)
    assert prefs.decay(0.02, 0.1) is True
    assert prefs.weights() == {}


def test_decay_store_failure_is_reported_not_raised(store, mocker):
    mocker.patch.object(store, "apply_decay", side_effect=RuntimeError("locked"))
    assert PreferenceModel(store).decay(0.02, 0.1) is False


@pytest.mark.parametrize("rate,floor", [(1.0, 0.1), (-0.1, 0.1), (0.1, 0.0)])
def test_decay_rejects_bad_arguments(store, rate, floor):
    with pytest.raises(ValueError):
        PreferenceModel(store).decay(rate, floor)
