"""FeatureResolver unit tests."""

from __future__ import annotations

from typing import Any

from gbflags.models import Feature, FeatureResult, FeatureSource
from gbflags.resolver import FeatureResolver


def make_resolver(
    raw: dict[str, Any],
    attributes: dict[str, Any] | None = None,
    **kwargs: Any,
) -> FeatureResolver:
    features = {key: Feature.from_dict(key, value) for key, value in raw.items()}
    return FeatureResolver(features, attributes or {}, **kwargs)


def fixed_hash(n: float | None):  # type: ignore[no-untyped-def]
    calls: list[tuple[str, str, int]] = []

    def _hash(seed: str, value: str, version: int) -> float | None:
        calls.append((seed, value, version))
        return n

    _hash.calls = calls  # type: ignore[attr-defined]
    return _hash


def test_unknown_feature() -> None:
    """An unknown id yields source unknownFeature and an absent value."""
    result = make_resolver({}).evaluate("nope")
    assert result.source == FeatureSource.UNKNOWN_FEATURE
    assert result.value is None
    assert result.on is False
    assert result.off is True


def test_default_value_without_rules() -> None:
    """A feature without rules resolves to its default."""
    result = make_resolver({"f": {"defaultValue": "blue"}}).evaluate("f")
    assert result == FeatureResult(id="f", value="blue", source=FeatureSource.DEFAULT)


def test_forced_rule_with_matching_condition() -> None:
    """A forced rule whose condition matches wins."""
    raw = {"f": {"defaultValue": False, "rules": [{"condition": {"country": "US"}, "force": True}]}}
    assert make_resolver(raw, {"country": "US"}).evaluate("f").source == FeatureSource.FORCE
    assert make_resolver(raw, {"country": "US"}).evaluate("f").value is True
    assert make_resolver(raw, {"country": "FR"}).evaluate("f").source == FeatureSource.DEFAULT


def test_first_passing_rule_wins() -> None:
    """Rules are tried in declared order and the first passing one wins."""
    raw = {
        "f": {
            "defaultValue": 0,
            "rules": [
                {"condition": {"tier": "gold"}, "force": 1},
                {"condition": {"country": "US"}, "force": 2},
                {"force": 3},
            ],
        }
    }
    assert make_resolver(raw, {"tier": "gold", "country": "US"}).evaluate("f").value == 1
    assert make_resolver(raw, {"tier": "free", "country": "US"}).evaluate("f").value == 2
    assert make_resolver(raw, {"tier": "free", "country": "FR"}).evaluate("f").value == 3


def test_forced_null_is_a_value() -> None:
    """A rule forcing JSON null still terminates with source force."""
    raw = {"f": {"defaultValue": "x", "rules": [{"force": None}]}}
    result = make_resolver(raw).evaluate("f")
    assert result.source == FeatureSource.FORCE
    assert result.value is None


def test_rule_without_force_falls_through() -> None:
    """A matching rule with nothing to force does not end evaluation."""
    raw = {"f": {"defaultValue": "d", "rules": [{"condition": {"a": 1}}, {"force": "second"}]}}
    assert make_resolver(raw, {"a": 1}).evaluate("f").value == "second"


def test_variations_rule_is_skipped() -> None:
    """Variation-based rules are unsupported and ignored."""
    raw = {
        "f": {
            "defaultValue": "d",
            "rules": [{"variations": ["a", "b"], "force": "a"}, {"force": "next"}],
        }
    }
    assert make_resolver(raw).evaluate("f").value == "next"


def test_cyclic_prerequisite_terminates() -> None:
    """A prerequisite cycle is reported instead of recursing forever."""
    raw = {
        "a": {"rules": [{"parentConditions": [{"id": "b", "condition": {"value": True}}], "force": 1}]},
        "b": {"rules": [{"parentConditions": [{"id": "a", "condition": {"value": True}}], "force": 1}]},
    }
    resolver = make_resolver(raw)
    result = resolver.evaluate("a")
    assert result.source == FeatureSource.CYCLIC_PREREQUISITE
    assert result.value is None
    assert resolver.evaluate("b").source == FeatureSource.CYCLIC_PREREQUISITE


def test_self_prerequisite_is_cyclic() -> None:
    """A feature depending on itself is cyclic."""
    raw = {"a": {"rules": [{"parentConditions": [{"id": "a", "condition": {"value": True}}]}]}}
    assert make_resolver(raw).evaluate("a").source == FeatureSource.CYCLIC_PREREQUISITE


def test_long_cycle_terminates() -> None:
    """Longer cycles are detected too."""
    ids = [f"f{i}" for i in range(50)]
    raw = {
        fid: {
            "rules": [
                {
                    "parentConditions": [
                        {"id": ids[(i + 1) % len(ids)], "condition": {"value": {"$exists": True}}}
                    ]
                }
            ]
        }
        for i, fid in enumerate(ids)
    }
    assert make_resolver(raw).evaluate("f0").source == FeatureSource.CYCLIC_PREREQUISITE


def test_shared_prerequisite_is_not_a_cycle() -> None:
    """Two prerequisites that share a dependency are not cyclic."""
    raw = {
        "d": {"defaultValue": True},
        "b": {"rules": [{"parentConditions": [{"id": "d", "condition": {"value": True}}], "force": True}]},
        "c": {"rules": [{"parentConditions": [{"id": "d", "condition": {"value": True}}], "force": True}]},
        "a": {
            "defaultValue": "off",
            "rules": [
                {
                    "parentConditions": [
                        {"id": "b", "condition": {"value": True}},
                        {"id": "c", "condition": {"value": True}},
                    ],
                    "force": "on",
                }
            ],
        },
    }
    result = make_resolver(raw).evaluate("a")
    assert result.source == FeatureSource.FORCE
    assert result.value == "on"


def test_prerequisite_pass() -> None:
    """A rule applies when its parent's value matches."""
    raw = {
        "parent": {"defaultValue": True},
        "child": {
            "defaultValue": "off",
            "rules": [{"parentConditions": [{"id": "parent", "condition": {"value": True}}], "force": "on"}],
        },
    }
    assert make_resolver(raw).evaluate("child").value == "on"


def test_prerequisite_gate_suppresses_feature() -> None:
    """A failing gated prerequisite ends evaluation of the whole feature."""
    raw = {
        "parent": {"defaultValue": False},
        "child": {
            "defaultValue": "default",
            "rules": [
                {"parentConditions": [{"id": "parent", "condition": {"value": True}, "gate": True}]},
                {"force": "later"},
            ],
        },
    }
    result = make_resolver(raw).evaluate("child")
    assert result.source == FeatureSource.PREREQUISITE
    assert result.value is None


def test_soft_prerequisite_skips_only_the_rule() -> None:
    """A failing non-gated prerequisite skips just its rule."""
    raw = {
        "parent": {"defaultValue": False},
        "child": {
            "defaultValue": "default",
            "rules": [
                {"parentConditions": [{"id": "parent", "condition": {"value": True}}], "force": "first"},
                {"force": "second"},
            ],
        },
    }
    assert make_resolver(raw).evaluate("child").value == "second"


def test_unknown_prerequisite_fails_condition() -> None:
    """An unknown parent evaluates to an absent value."""
    raw = {
        "child": {
            "defaultValue": "default",
            "rules": [{"parentConditions": [{"id": "ghost", "condition": {"value": {"$exists": True}}}], "force": "x"}],
        }
    }
    assert make_resolver(raw).evaluate("child").value == "default"


def test_rollout_coverage_uses_hash() -> None:
    """Coverage compares the hash of the identity attribute."""
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "coverage": 0.5}]}}
    assert make_resolver(raw, {"id": "u1"}, hash_function=fixed_hash(0.3)).evaluate("f").value == "on"
    assert make_resolver(raw, {"id": "u1"}, hash_function=fixed_hash(0.7)).evaluate("f").value == "off"


def test_rollout_range() -> None:
    """A range rule includes hash values inside the interval."""
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "range": [0.2, 0.4]}]}}
    assert make_resolver(raw, {"id": "u1"}, hash_function=fixed_hash(0.25)).evaluate("f").value == "on"
    assert make_resolver(raw, {"id": "u1"}, hash_function=fixed_hash(0.4)).evaluate("f").value == "off"


def test_rollout_seed_and_version_defaults() -> None:
    """Seed defaults to the feature id and hash version to 1."""
    hash_fn = fixed_hash(0.1)
    raw = {"checkout": {"rules": [{"force": True, "coverage": 0.5}]}}
    make_resolver(raw, {"id": "u1"}, hash_function=hash_fn).evaluate("checkout")
    assert hash_fn.calls == [("checkout", "u1", 1)]


def test_rollout_custom_seed_attribute_and_version() -> None:
    """Explicit seed, hash attribute and version are passed to the hash."""
    hash_fn = fixed_hash(0.1)
    raw = {
        "f": {
            "rules": [
                {"force": True, "coverage": 0.5, "seed": "s1", "hashAttribute": "company", "hashVersion": 2}
            ]
        }
    }
    make_resolver(raw, {"id": "u1", "company": 42}, hash_function=hash_fn).evaluate("f")
    assert hash_fn.calls == [("s1", "42", 2)]


def test_rollout_without_identity_is_excluded() -> None:
    """An empty hash attribute excludes the caller from the rollout."""
    hash_fn = fixed_hash(0.0)
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "coverage": 1.0}]}}
    assert make_resolver(raw, {}, hash_function=hash_fn).evaluate("f").value == "off"
    assert hash_fn.calls == []


def test_rollout_unhashable_is_excluded() -> None:
    """A None hash result excludes the caller."""
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "coverage": 1.0}]}}
    assert make_resolver(raw, {"id": "u1"}, hash_function=fixed_hash(None)).evaluate("f").value == "off"


def test_rollout_without_coverage_or_range_does_not_hash() -> None:
    """A seed alone does not gate the rule."""
    hash_fn = fixed_hash(0.99)
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "seed": "x"}]}}
    assert make_resolver(raw, {}, hash_function=hash_fn).evaluate("f").value == "on"
    assert hash_fn.calls == []


def test_hash_attribute_from_user_context() -> None:
    """The identity falls back to the secondary user context."""
    resolver = make_resolver({}, {"country": "US"}, user={"id": "from-user"})
    assert resolver.get_hash_value("id") == ("id", "from-user")


def test_hash_value_is_stringified() -> None:
    """Resolved identities are stringified JSON-style."""
    resolver = make_resolver({}, {"id": 7, "flag": True, "score": 3.0})
    assert resolver.get_hash_value(None) == ("id", "7")
    assert resolver.get_hash_value("flag") == ("flag", "true")
    assert resolver.get_hash_value("score") == ("score", "3")


def test_fallback_attribute_used_when_primary_empty() -> None:
    """With sticky bucketing the fallback attribute stands in for a missing id."""
    resolver = make_resolver({}, {"device_id": "d-1"}, sticky_bucketing=True)
    assert resolver.get_hash_value("id", "device_id") == ("device_id", "d-1")


def test_fallback_attribute_ignored_when_primary_present() -> None:
    """The fallback is never consulted while the primary has a value."""
    resolver = make_resolver({}, {"id": "u1", "device_id": "d-1"}, sticky_bucketing=True)
    assert resolver.get_hash_value("id", "device_id") == ("id", "u1")


def test_fallback_attribute_requires_sticky_bucketing() -> None:
    """Without sticky bucketing the fallback attribute is ignored."""
    resolver = make_resolver({}, {"device_id": "d-1"})
    assert resolver.get_hash_value("id", "device_id") == ("id", "")


def test_fallback_attribute_empty_keeps_primary_name() -> None:
    """An empty fallback keeps the primary attribute name."""
    resolver = make_resolver({}, {"device_id": ""}, sticky_bucketing=True)
    assert resolver.get_hash_value("id", "device_id") == ("id", "")


def test_fallback_attribute_drives_rollout() -> None:
    """The fallback identity is what gets hashed."""
    hash_fn = fixed_hash(0.1)
    raw = {
        "f": {
            "defaultValue": "off",
            "rules": [{"force": "on", "coverage": 0.5, "fallbackAttribute": "device_id"}],
        }
    }
    resolver = make_resolver(raw, {"device_id": "d-1"}, hash_function=hash_fn, sticky_bucketing=True)
    assert resolver.evaluate("f").value == "on"
    assert hash_fn.calls == [("f", "d-1", 1)]


def test_evaluation_is_deterministic() -> None:
    """Repeated evaluation with real hashing gives identical results."""
    raw = {"f": {"defaultValue": "off", "rules": [{"force": "on", "coverage": 0.5, "hashVersion": 2}]}}
    for i in range(50):
        attrs = {"id": f"user-{i}"}
        first = make_resolver(raw, attrs).evaluate("f")
        second = make_resolver(raw, attrs).evaluate("f")
        assert first == second


def test_evaluation_does_not_mutate_features() -> None:
    """Evaluation leaves the feature definitions untouched."""
    raw = {
        "parent": {"defaultValue": True},
        "f": {"rules": [{"parentConditions": [{"id": "parent", "condition": {"value": True}}], "force": 1}]},
    }
    features = {key: Feature.from_dict(key, value) for key, value in raw.items()}
    before = {key: f.to_dict() for key, f in features.items()}
    FeatureResolver(features).evaluate("f")
    assert {key: f.to_dict() for key, f in features.items()} == before
