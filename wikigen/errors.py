"""Exceptions raised while building a wiki."""

from __future__ import annotations

from pathlib import Path


class WikiError(Exception):
    """Base exception for all build errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConfigurationError(WikiError):
    """Raised when the configuration or the input globs are invalid."""

    pass


class WalkError(ConfigurationError):
    """Raised when a category's base directory cannot be walked."""

    def __init__(self, message: str, category: str, *args, **kwargs):
        self.category = category
        super().__init__(message, *args, **kwargs)


class ExtractionError(WikiError):
    """Base exception for front-matter problems in an article."""

    def __init__(self, message: str, path: Path, *args, **kwargs):
        self.path = path
        super().__init__(message, *args, **kwargs)


class MissingMetadataBlock(ExtractionError):
    """Raised when an article has no YAML metadata block."""

    def __init__(self, path: Path):
        super().__init__(
            f"'{path}': Expected a YAML metadata block at the start of the document", path
        )


class InvalidMetadataSyntax(ExtractionError):
    """Raised when the metadata block is not valid YAML."""

    def __init__(self, path: Path, detail: str):
        self.detail = detail
        super().__init__(f"Invalid YAML in the metadata block of file '{path}': {detail}", path)


class MissingTitle(ExtractionError):
    """Raised when the metadata block has no `title`."""

    def __init__(self, path: Path):
        super().__init__(f"No `title` in the YAML metadata block of file '{path}'", path)


class WrongFieldType(ExtractionError):
    """Raised when a known metadata field has the wrong YAML type."""

    def __init__(self, path: Path, field: str, expected: str, found: str):
        self.field = field
        self.expected = expected
        self.found = found
        super().__init__(
            f"Expected {expected} as the `{field}` in the metadata of file '{path}', instead found {found}",
            path,
        )


class WikiIOError(WikiError):
    """Raised when reading, writing or copying a file fails."""

    def __init__(self, operation: str, path: Path, error: OSError):
        self.operation = operation
        self.path = path
        self.error = error
        super().__init__(f"Error while {operation} '{path}': {error}")


class RenderError(WikiError):
    """Raised when the renderer fails on an article."""

    def __init__(self, message: str, path: Path, *args, **kwargs):
        self.path = path
        super().__init__(message, *args, **kwargs)
