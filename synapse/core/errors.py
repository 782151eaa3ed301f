"""Error taxonomy shared by ingestion and retrieval.

Only two conditions are allowed to reach callers as request failures:
embedding generation failing during item creation, and both retrieval
paths failing during search. Everything else degrades and is logged.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    AUTH_ERROR = "auth_error"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"


TRANSIENT_KINDS = frozenset({ErrorKind.QUOTA_EXCEEDED, ErrorKind.UNAVAILABLE})


class SynapseError(Exception):
    pass


class ProviderError(SynapseError):
    """A language-model backend call failed.

    `kind` is what policy code branches on; the message is for logs only.
    """

    def __init__(self, kind: ErrorKind, message: str = "", *, provider: str | None = None) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.provider = provider

    @property
    def transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS


class TransientProviderError(ProviderError):
    """Quota or availability failure; eligible for fallback or degradation."""


def provider_error(kind: ErrorKind, message: str = "", *, provider: str | None = None) -> ProviderError:
    if kind in TRANSIENT_KINDS:
        return TransientProviderError(kind, message, provider=provider)
    return ProviderError(kind, message, provider=provider)


class FatalInputError(SynapseError):
    pass


class EmbeddingUnavailable(FatalInputError):
    def __init__(self, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"failed to generate embedding (check AI provider configuration){detail}")
        self.cause = cause


class PartialSubsystemFailure(SynapseError):
    """One subsystem failed while an alternative path remained available."""

    def __init__(self, subsystem: str, cause: BaseException | None = None) -> None:
        super().__init__(f"{subsystem} failed: {cause}")
        self.subsystem = subsystem
        self.cause = cause


class DualSubsystemFailure(SynapseError):
    def __init__(self, vector_error: BaseException, text_error: BaseException) -> None:
        super().__init__(f"search failed: semantic={vector_error}, text={text_error}")
        self.vector_error = vector_error
        self.text_error = text_error


class RequestTimeout(SynapseError):
    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(f"{operation} timed out after {timeout_s:.1f}s")
        self.operation = operation
        self.timeout_s = timeout_s
