# src/thinko_space/errors.py

"""
Error taxonomy.

Only conditions that must reach the user are exceptions. Blank input and
missing target ids are plain return values (None / False / []) and never
raise.
"""

from __future__ import annotations


class ThinkoError(RuntimeError):
    """Base class for all application errors."""


class MissingCredentialsError(ThinkoError):
    """Generation requested without a usable API key."""


class GenerationFailedError(ThinkoError):
    """The text generation service failed or produced nothing usable."""


class NoUsableItemsError(GenerationFailedError):
    """Model output contained no usable list items."""

    def __init__(self, message: str = "I couldn't generate subtasks for this. Try rephrasing.") -> None:
        super().__init__(message)


class LLMBusyError(GenerationFailedError):
    """Another generation request is still in flight."""


class CorruptStorageError(ThinkoError):
    """Stored task data could not be parsed."""


class VideoSearchError(ThinkoError):
    """Tutorial video lookup failed."""


class BackupError(ThinkoError):
    """Backup export/import failed."""
