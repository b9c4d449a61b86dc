"""Error taxonomy shared by the story engine and profile persistence."""

from __future__ import annotations


class StoryPlayerError(RuntimeError):
    """Base class for story player failures."""


class StorageUnavailable(StoryPlayerError):
    """Raised when durable profile storage cannot be opened at all."""


class StorageError(StoryPlayerError):
    """Raised when one read, write, or delete against profile storage fails."""


class ContentNotFound(StoryPlayerError, LookupError):
    """Raised when a chapter, scene, dialogue, or choice does not exist."""


class ContentValidationError(StoryPlayerError):
    """Raised when authored story content fails validation at load time."""


class NoActiveProfile(StoryPlayerError):
    """Raised when a profile operation needs an active profile and none is loaded."""
