"""FeatureFlagClient: the public entry point of the library."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import structlog

from .config import DEFAULT_API_HOST, ClientConfig
from .exceptions import FeatureFlagError
from .hashing import HashFunction, gbhash
from .logger import new_logger
from .models import Feature, FeatureResult
from .repository import FeatureRepository
from .resolver import FeatureResolver

logger = structlog.stdlib.get_logger(__name__)


class FeatureFlagClient:
    """Evaluates GrowthBook-style feature definitions locally.

    The active feature set and attributes are swapped as whole objects under
    a lock; evaluation reads one snapshot of each and takes no lock.

    Example::

        client = FeatureFlagClient(client_key="sdk-abc", attributes={"id": "u1"})
        client.load_features()
        if client.is_on("new-checkout"):
            ...
    """

    def __init__(
        self,
        client_key: str = "",
        api_host: str = DEFAULT_API_HOST,
        features: Mapping[str, Any] | None = None,
        attributes: Mapping[str, Any] | None = None,
        user: Mapping[str, Any] | None = None,
        cache_ttl: float = 60,
        repository: FeatureRepository | None = None,
        hash_function: HashFunction = gbhash,
        sticky_bucketing: bool = False,
    ) -> None:
        self._client_key = client_key
        self._api_host = api_host
        self._cache_ttl = cache_ttl
        self._repository = repository if repository is not None else FeatureRepository()
        self._hash_function = hash_function
        self._sticky_bucketing = sticky_bucketing
        self._swap_lock = threading.Lock()
        self._features: Mapping[str, Feature] = MappingProxyType({})
        self._attributes: Mapping[str, Any] = MappingProxyType(dict(attributes or {}))
        self._user: Mapping[str, Any] = MappingProxyType(dict(user or {}))
        if features:
            self.set_features(features)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> FeatureFlagClient:
        """Build a client from loaded settings and apply its log section."""
        new_logger(config.log.level, config.log.format)
        repository = kwargs.pop("repository", None) or FeatureRepository(timeout=config.timeout)
        return cls(
            client_key=config.client_key,
            api_host=config.api_host,
            cache_ttl=config.cache_ttl,
            sticky_bucketing=config.sticky_bucketing,
            repository=repository,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def features(self) -> Mapping[str, Feature]:
        return self._features

    @property
    def attributes(self) -> Mapping[str, Any]:
        return self._attributes

    @property
    def user(self) -> Mapping[str, Any]:
        return self._user

    def set_features(self, features: Mapping[str, Any]) -> None:
        """Replace the active feature set.

        Values may be Feature instances or raw JSON feature objects. The new
        set is fully built before it replaces the old one, so an invalid
        definition leaves the previous set active.

        Raises:
            FeatureFlagError: INVALID_FEATURE
        """
        built: dict[str, Feature] = {}
        for feature_id, feature in features.items():
            if isinstance(feature, Feature):
                built[feature.id] = feature
            else:
                built[feature_id] = Feature.from_dict(feature_id, feature)
        snapshot = MappingProxyType(built)
        with self._swap_lock:
            self._features = snapshot
        logger.debug("features_set", count=len(built))

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        snapshot = MappingProxyType(dict(attributes))
        with self._swap_lock:
            self._attributes = snapshot

    def set_user(self, user: Mapping[str, Any]) -> None:
        snapshot = MappingProxyType(dict(user))
        with self._swap_lock:
            self._user = snapshot

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _apply_loaded(self, loaded: Mapping[str, Any]) -> bool:
        try:
            self.set_features(loaded)
        except FeatureFlagError as e:
            logger.warning("load_features_failed", code=e.code, error=str(e))
            return False
        return True

    def load_features(self) -> bool:
        """Fetch features through the repository and activate them.

        Returns False, keeping the current set, when loading fails.
        """
        try:
            loaded = self._repository.load_features(
                self._api_host, self._client_key, self._cache_ttl
            )
        except FeatureFlagError as e:
            logger.warning("load_features_failed", code=e.code, error=str(e))
            return False
        return self._apply_loaded(loaded)

    async def load_features_async(self) -> bool:
        """Async variant of load_features."""
        try:
            loaded = await self._repository.load_features_async(
                self._api_host, self._client_key, self._cache_ttl
            )
        except FeatureFlagError as e:
            logger.warning("load_features_failed", code=e.code, error=str(e))
            return False
        return self._apply_loaded(loaded)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _resolver(self, features: Mapping[str, Feature] | None = None) -> FeatureResolver:
        return FeatureResolver(
            features=features if features is not None else self._features,
            attributes=self._attributes,
            user=self._user,
            hash_function=self._hash_function,
            sticky_bucketing=self._sticky_bucketing,
        )

    def evaluate(self, feature_id: str) -> FeatureResult:
        return self._resolver().evaluate(feature_id)

    eval_feature = evaluate

    def is_on(self, feature_id: str) -> bool:
        return self.evaluate(feature_id).on

    def is_off(self, feature_id: str) -> bool:
        return self.evaluate(feature_id).off

    def get_value(self, feature_id: str, fallback: Any = None) -> Any:
        """Feature value, or ``fallback`` when the value is absent or null."""
        result = self.evaluate(feature_id)
        if result.value is None:
            return fallback
        return result.value

    def get_all_values(self) -> dict[str, Any]:
        """Evaluate every loaded feature against the current attributes."""
        features = self._features
        resolver = self._resolver(features)
        return {feature_id: resolver.evaluate(feature_id).value for feature_id in features}
