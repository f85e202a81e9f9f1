"""Feature definition loading over HTTP with a TTL cache."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from .cache import FeatureCache, InMemoryFeatureCache
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes

logger = structlog.stdlib.get_logger(__name__)


class FeatureRepository:
    """Fetches ``{api_host}/api/features/{client_key}`` and caches the result."""

    def __init__(self, cache: FeatureCache | None = None, timeout: float = 10.0) -> None:
        self._cache = cache if cache is not None else InMemoryFeatureCache()
        self._timeout = timeout

    @staticmethod
    def cache_key(api_host: str, client_key: str) -> str:
        return f"{api_host}::{client_key}"

    @staticmethod
    def features_url(api_host: str, client_key: str) -> str:
        return f"{api_host.rstrip('/')}/api/features/{client_key}"

    def clear_cache(self) -> None:
        self._cache.clear()

    def _decode(self, resp: httpx.Response, url: str) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.DECODE_ERROR,
                message=f"Response from {url} is not valid JSON",
                cause=e,
            ) from e
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, dict):
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.DECODE_ERROR,
                message=f"Response from {url} has no features object",
            )
        return features

    def _store(self, key: str, features: dict[str, Any], ttl: float) -> None:
        if ttl > 0:
            self._cache.set(key, features, ttl)

    def load_features(self, api_host: str, client_key: str, ttl: float = 60) -> dict[str, Any]:
        """Return the raw feature mapping, from cache while it is fresh.

        Raises:
            FeatureFlagError: FETCH_ERROR or DECODE_ERROR
        """
        key = self.cache_key(api_host, client_key)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("features_cache_hit", api_host=api_host)
            return cached

        url = self.features_url(api_host, client_key)
        logger.debug("fetching_features", url=url)
        try:
            resp = httpx.get(url, timeout=self._timeout)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.FETCH_ERROR,
                message=f"Failed to fetch features from {url}: {e}",
                cause=e,
            ) from e

        features = self._decode(resp, url)
        self._store(key, features, ttl)
        return features

    async def load_features_async(
        self, api_host: str, client_key: str, ttl: float = 60
    ) -> dict[str, Any]:
        """Async variant of load_features."""
        key = self.cache_key(api_host, client_key)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("features_cache_hit", api_host=api_host)
            return cached

        url = self.features_url(api_host, client_key)
        logger.debug("fetching_features", url=url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FeatureFlagError(
                code=FeatureFlagErrorCodes.FETCH_ERROR,
                message=f"Failed to fetch features from {url}: {e}",
                cause=e,
            ) from e

        features = self._decode(resp, url)
        self._store(key, features, ttl)
        return features
