from __future__ import annotations


class CatalogIndexError(Exception):
    """Base for every fatal pipeline error."""


class TransportError(CatalogIndexError):
    """Non-success HTTP status or network failure."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(CatalogIndexError):
    """Error payload or malformed data in an otherwise successful response."""


class MissingInputError(CatalogIndexError):
    """A required snapshot file is absent."""

    def __init__(self, name: str):
        super().__init__(f"Missing required file: {name}")
        self.name = name


class MalformedInputError(CatalogIndexError):
    """A snapshot file exists but is not valid JSON."""

    def __init__(self, name: str, detail: str = ""):
        msg = f"Malformed JSON in file: {name}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
        self.name = name
