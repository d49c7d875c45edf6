"""Error taxonomy.

Only ModelLoadError is meant to reach callers. The others are raised by
adapters and caught at the use-case boundary, where they degrade to an
empty result.
"""

from typing import Optional


class ExtractionError(Exception):
    """The decoder is missing or exited with a non-zero status."""

    def __init__(self, message: str, stderr: Optional[str] = None):
        super().__init__(message)
        self.stderr = stderr


class ModelLoadError(Exception):
    """Model weights are missing, corrupt or could not be fetched."""


class InferenceError(Exception):
    """A model call failed; ``partial`` holds anything produced before the failure."""

    def __init__(self, message: str, partial: Optional[list] = None):
        super().__init__(message)
        self.partial = partial or []
