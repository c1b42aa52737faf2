"""
Domain errors raised by the scanning engine.

Services raise these; the API layer maps them to HTTP status codes.
"""

from typing import Iterable


class SocialShieldError(Exception):
    """Base class for all engine errors."""


# ============== INVALID INPUT ==============


class InvalidInputError(SocialShieldError):
    """A scan precondition was violated. Raised before any I/O."""


class EmptyContentError(InvalidInputError):
    def __init__(self):
        super().__init__("Content must not be empty.")


class UnsupportedSourceTypeError(InvalidInputError):
    def __init__(self, source_type: str, allowed: Iterable[str]):
        self.source_type = source_type
        super().__init__(
            f"Unsupported source_type '{source_type}'. Must be one of {sorted(allowed)}."
        )


class ContentTooLongError(InvalidInputError):
    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Content is {length} characters; the limit is {limit}.")


# ============== COLLABORATOR FAILURES ==============


class CatalogUnavailableError(SocialShieldError):
    """The pattern catalog could not be read."""


class PersistenceError(SocialShieldError):
    """A threat record or stats write failed. Nothing was committed."""


# ============== STATUS TRANSITIONS ==============


class ThreatNotFoundError(SocialShieldError):
    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"Threat record {record_id} not found.")


class IllegalTransitionError(SocialShieldError):
    def __init__(self, record_id: int, current: str, target: str):
        self.record_id = record_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move threat record {record_id} from '{current}' to '{target}'."
        )
