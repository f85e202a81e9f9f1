"""gbflags exception types."""

from __future__ import annotations


class FeatureFlagError(Exception):
    """Base error for the gbflags library."""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FeatureFlagErrorCodes:
    """FeatureFlagError code constants."""

    FETCH_ERROR: str = "FETCH_ERROR"
    DECODE_ERROR: str = "DECODE_ERROR"
    INVALID_FEATURE: str = "INVALID_FEATURE"
    CONFIG_ERROR: str = "CONFIG_ERROR"
