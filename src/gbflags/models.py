"""Feature definition and evaluation result models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes


class FeatureSource(StrEnum):
    """Where a FeatureResult value came from."""

    DEFAULT = "default"
    UNKNOWN_FEATURE = "unknownFeature"
    CYCLIC_PREREQUISITE = "cyclicPrerequisite"
    PREREQUISITE = "prerequisite"
    FORCE = "force"
    EXPERIMENT = "experiment"


@dataclass(frozen=True)
class ParentCondition:
    """Prerequisite on another feature's evaluated value."""

    id: str
    condition: dict[str, Any]
    gate: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ParentCondition:
        return cls(
            id=str(data.get("id", "")),
            condition=data.get("condition") or {},
            gate=bool(data.get("gate", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "condition": self.condition, "gate": self.gate}


@dataclass(frozen=True)
class Rule:
    """A conditional override of a feature's value.

    ``force`` may legitimately be JSON null, so ``has_force`` records whether
    the rule carried a ``force`` key at all.
    """

    condition: dict[str, Any] | None = None
    parent_conditions: tuple[ParentCondition, ...] = ()
    force: Any = None
    has_force: bool = False
    coverage: float | None = None
    range: tuple[float, float] | None = None
    seed: str | None = None
    hash_attribute: str | None = None
    fallback_attribute: str | None = None
    hash_version: int | None = None
    variations: list[Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        raw_range = data.get("range")
        rule_range: tuple[float, float] | None = None
        if isinstance(raw_range, (list, tuple)) and len(raw_range) == 2:
            rule_range = (float(raw_range[0]), float(raw_range[1]))
        raw_parents = data.get("parentConditions") or []
        if not isinstance(raw_parents, list) or not all(
            isinstance(p, Mapping) for p in raw_parents
        ):
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.INVALID_FEATURE,
                message="parentConditions must be a list of objects",
            )
        coverage = data.get("coverage")
        hash_version = data.get("hashVersion")
        seed = data.get("seed")
        return cls(
            condition=data.get("condition") or None,
            parent_conditions=tuple(ParentCondition.from_dict(p) for p in raw_parents),
            force=data.get("force"),
            has_force="force" in data,
            coverage=float(coverage) if coverage is not None else None,
            range=rule_range,
            seed=str(seed) if seed is not None else None,
            hash_attribute=data.get("hashAttribute"),
            fallback_attribute=data.get("fallbackAttribute"),
            hash_version=int(hash_version) if hash_version is not None else None,
            variations=data.get("variations"),
        )

    @property
    def has_rollout(self) -> bool:
        return (
            self.coverage is not None
            or self.range is not None
            or self.seed is not None
            or self.hash_attribute is not None
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.condition is not None:
            data["condition"] = self.condition
        if self.parent_conditions:
            data["parentConditions"] = [p.to_dict() for p in self.parent_conditions]
        if self.has_force:
            data["force"] = self.force
        if self.coverage is not None:
            data["coverage"] = self.coverage
        if self.range is not None:
            data["range"] = list(self.range)
        if self.seed is not None:
            data["seed"] = self.seed
        if self.hash_attribute is not None:
            data["hashAttribute"] = self.hash_attribute
        if self.fallback_attribute is not None:
            data["fallbackAttribute"] = self.fallback_attribute
        if self.hash_version is not None:
            data["hashVersion"] = self.hash_version
        if self.variations is not None:
            data["variations"] = self.variations
        return data


@dataclass(frozen=True)
class Feature:
    """A named flag with a default value and ordered rules."""

    id: str
    default_value: Any = None
    rules: tuple[Rule, ...] = ()

    @classmethod
    def from_dict(cls, feature_id: str, data: Any) -> Feature:
        if not isinstance(data, Mapping):
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.INVALID_FEATURE,
                message=f"Feature definition must be an object: {feature_id}",
            )
        raw_rules = data.get("rules") or []
        if not isinstance(raw_rules, list) or not all(
            isinstance(r, Mapping) for r in raw_rules
        ):
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.INVALID_FEATURE,
                message=f"Feature rules must be a list of objects: {feature_id}",
            )
        try:
            rules = tuple(Rule.from_dict(r) for r in raw_rules)
        except FeatureFlagError as e:
            raise FeatureFlagError(
                code=e.code,
                message=f"Invalid rule in feature {feature_id}: {e.args[0]}",
                cause=e,
            ) from e
        except (AttributeError, TypeError, ValueError) as e:
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.INVALID_FEATURE,
                message=f"Invalid rule in feature {feature_id}: {e}",
                cause=e,
            ) from e
        return cls(
            id=feature_id,
            default_value=data.get("defaultValue"),
            rules=rules,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "defaultValue": self.default_value,
            "rules": [r.to_dict() for r in self.rules],
        }


@dataclass(frozen=True)
class FeatureResult:
    """Outcome of evaluating one feature."""

    id: str
    value: Any = None
    source: FeatureSource = FeatureSource.DEFAULT
    rule: Rule | None = field(default=None, compare=False)

    @property
    def on(self) -> bool:
        return bool(self.value)

    @property
    def off(self) -> bool:
        return not self.on

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "value": self.value,
            "source": self.source.value,
            "on": self.on,
            "off": self.off,
        }
