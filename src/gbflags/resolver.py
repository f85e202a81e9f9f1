"""Per-feature rule resolution with prerequisite recursion."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any

import structlog

from ._text import json_text
from .condition import eval_condition
from .hashing import HashFunction, gbhash
from .models import Feature, FeatureResult, FeatureSource, ParentCondition, Rule
from .rollout import is_included

logger = structlog.stdlib.get_logger(__name__)

DEFAULT_HASH_ATTRIBUTE = "id"
DEFAULT_HASH_VERSION = 1


class PrereqOutcome(StrEnum):
    """Result of checking a rule's parent conditions."""

    PASS = "pass"
    FAIL = "fail"
    GATE = "gate"
    CYCLIC = "cyclic"


class FeatureResolver:
    """Evaluates features against one snapshot of features and attributes.

    The resolver never mutates what it is given. The set of features on the
    current prerequisite path is passed down each recursive call instead of
    being stored on the instance, so one resolver may serve concurrent
    top-level evaluations.
    """

    def __init__(
        self,
        features: Mapping[str, Feature],
        attributes: Mapping[str, Any] | None = None,
        user: Mapping[str, Any] | None = None,
        hash_function: HashFunction = gbhash,
        sticky_bucketing: bool = False,
    ) -> None:
        self._features = features
        self._attributes: Mapping[str, Any] = attributes or {}
        self._user: Mapping[str, Any] = user or {}
        self._hash = hash_function
        self._sticky_bucketing = sticky_bucketing

    def evaluate(self, feature_id: str) -> FeatureResult:
        """Evaluate ``feature_id`` from a fresh, empty visiting set."""
        return self._evaluate(feature_id, set())

    def _evaluate(self, feature_id: str, visiting: set[str]) -> FeatureResult:
        log = logger.bind(feature=feature_id)
        log.debug("evaluating_feature")

        feature = self._features.get(feature_id)
        if feature is None:
            log.debug("unknown_feature")
            return FeatureResult(id=feature_id, source=FeatureSource.UNKNOWN_FEATURE)

        if feature_id in visiting:
            log.warning("cyclic_prerequisite", visiting=sorted(visiting))
            return FeatureResult(id=feature_id, source=FeatureSource.CYCLIC_PREREQUISITE)

        visiting.add(feature_id)

        for index, rule in enumerate(feature.rules):
            log.debug("evaluating_rule", rule_index=index, rule=rule.to_dict())

            if rule.parent_conditions:
                outcome = self._eval_prereqs(rule.parent_conditions, visiting)
                if outcome is PrereqOutcome.CYCLIC:
                    return FeatureResult(
                        id=feature_id, source=FeatureSource.CYCLIC_PREREQUISITE
                    )
                if outcome is PrereqOutcome.GATE:
                    log.debug("prerequisite_gate_failed", rule_index=index)
                    return FeatureResult(id=feature_id, source=FeatureSource.PREREQUISITE)
                if outcome is PrereqOutcome.FAIL:
                    log.debug("skip_rule_prerequisite_failed", rule_index=index)
                    continue

            if rule.condition and not eval_condition(self._attributes, rule.condition):
                log.debug("skip_rule_condition_failed", rule_index=index)
                continue

            if rule.has_force and rule.has_rollout:
                if not self._is_included_in_rollout(rule, feature_id):
                    log.debug("skip_rule_not_in_rollout", rule_index=index)
                    continue

            if rule.variations is not None:
                log.warning("skip_invalid_rule", rule_index=index, reason="variations")
                continue

            if rule.has_force:
                log.debug("forced_value", rule_index=index)
                return FeatureResult(
                    id=feature_id,
                    value=rule.force,
                    source=FeatureSource.FORCE,
                    rule=rule,
                )

        return FeatureResult(
            id=feature_id,
            value=feature.default_value,
            source=FeatureSource.DEFAULT,
        )

    def _eval_prereqs(
        self, parent_conditions: Sequence[ParentCondition], visiting: set[str]
    ) -> PrereqOutcome:
        for parent in parent_conditions:
            # visiting holds only the current prerequisite path
            parent_result = self._evaluate(parent.id, set(visiting))

            if parent_result.source is FeatureSource.CYCLIC_PREREQUISITE:
                return PrereqOutcome.CYCLIC

            if not eval_condition({"value": parent_result.value}, parent.condition):
                if parent.gate:
                    return PrereqOutcome.GATE
                return PrereqOutcome.FAIL
        return PrereqOutcome.PASS

    # ------------------------------------------------------------------
    # Rollout
    # ------------------------------------------------------------------

    def _is_included_in_rollout(self, rule: Rule, feature_id: str) -> bool:
        if rule.coverage is None and rule.range is None:
            return True

        _, hash_value = self.get_hash_value(rule.hash_attribute, rule.fallback_attribute)
        if hash_value == "":
            return False

        n = self._hash(
            rule.seed or feature_id,
            hash_value,
            rule.hash_version or DEFAULT_HASH_VERSION,
        )
        return is_included(n, rule.coverage, rule.range)

    def _lookup(self, attr: str) -> Any:
        if attr in self._attributes:
            return self._attributes[attr]
        if attr in self._user:
            return self._user[attr]
        return None

    def get_hash_value(
        self, attr: str | None, fallback_attr: str | None = None
    ) -> tuple[str, str]:
        """Resolve the identity used for bucketing.

        Returns ``(attribute_name, stringified_value)``. The fallback attribute
        is consulted only when the primary value is empty and sticky bucketing
        is enabled; its name is reported only when it yields a value.
        """
        attr = attr or DEFAULT_HASH_ATTRIBUTE
        value = json_text(self._lookup(attr))

        if value == "" and fallback_attr and self._sticky_bucketing:
            fallback_value = json_text(self._lookup(fallback_attr))
            if fallback_value != "":
                return fallback_attr, fallback_value

        return attr, value
