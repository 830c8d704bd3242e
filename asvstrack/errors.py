"""Error taxonomy for asvstrack."""


class AsvsTrackError(Exception):
    """Base class for all asvstrack errors."""

    pass


class ValidationError(AsvsTrackError):
    """Raised on malformed input (missing section id, unknown field name)."""

    pass


class NotFoundError(AsvsTrackError):
    """Raised when a record does not exist or is not owned by the caller."""

    pass


class InvariantViolation(AsvsTrackError):
    """Raised when stored data breaks referential integrity.

    The aggregation engine raises this for a requirement pointing at a
    section that does not exist.
    """

    def __init__(self, message: str, section_id: str | None = None):
        super().__init__(message)
        self.section_id = section_id


class TransientIOError(AsvsTrackError):
    """Raised when the store is unreachable. Recoverable by retry."""

    pass
