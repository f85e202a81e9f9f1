"""gbflags: local evaluation of GrowthBook-style feature flags."""

from .cache import FeatureCache, InMemoryFeatureCache
from .client import FeatureFlagClient
from .condition import MISSING, eval_condition, eval_condition_value, get_path
from .config import ClientConfig, LogSection, load_config
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .hashing import fnv1a32, gbhash
from .logger import new_logger
from .models import Feature, FeatureResult, FeatureSource, ParentCondition, Rule
from .repository import FeatureRepository
from .resolver import FeatureResolver, PrereqOutcome
from .rollout import in_range, is_included
from .version import padded_version_string

__all__ = [
    "ClientConfig",
    "Feature",
    "FeatureCache",
    "FeatureFlagClient",
    "FeatureFlagError",
    "FeatureFlagErrorCodes",
    "FeatureRepository",
    "FeatureResolver",
    "FeatureResult",
    "FeatureSource",
    "InMemoryFeatureCache",
    "LogSection",
    "MISSING",
    "ParentCondition",
    "PrereqOutcome",
    "Rule",
    "eval_condition",
    "eval_condition_value",
    "fnv1a32",
    "gbhash",
    "get_path",
    "in_range",
    "is_included",
    "load_config",
    "new_logger",
    "padded_version_string",
]
