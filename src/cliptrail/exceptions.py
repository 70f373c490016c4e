"""Exceptions raised inside the ClipTrail history engine.

None of these are fatal to the process: the public cache and monitor surfaces
catch them and degrade to "no visible change".
"""

from typing import Optional


class ClipTrailError(Exception):
    """Base exception class for ClipTrail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error

    def __str__(self):
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class UnrecognizedContent(ClipTrailError):
    """The clipboard offered none of the text, image or file representations."""
    pass


class DuplicateContent(ClipTrailError):
    """A new observation equals a record already resident in the window."""
    pass


class PersistenceFailure(ClipTrailError):
    """Reading, writing or decoding a persisted record failed."""
    pass


class NotFound(ClipTrailError):
    """No resident record carries the requested id."""
    pass
