"""Error taxonomy shared by the builder, resolver and HTTP layer."""

from __future__ import annotations

from typing import Any


class TomsterError(Exception):
    """Base class carrying the public error code and HTTP status."""

    code = "internal_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.code, "description": self.message, **self.details}


class InvalidKeyFormat(TomsterError):
    """The variant key does not match the four-segment grammar."""

    code = "invalid_key_format"
    status_code = 400


class UnknownVariant(TomsterError):
    """A well-formed key that the published table does not contain.

    Usually means the client cached keys from an older table version.
    """

    code = "unknown_variant"
    status_code = 404


class NoContent(TomsterError):
    """The variant currently has no songs. Not a server failure."""

    code = "no_content"
    status_code = 404


class CatalogUnavailable(TomsterError):
    code = "catalog_unavailable"
    status_code = 503
    retryable = True


class BuildInconsistency(TomsterError):
    """A freshly built table violated an invariant and was not published."""

    code = "build_inconsistency"
