"""Error definitions for hot-topic analysis."""


class HotTopicError(Exception):
    """Base hot-topic error."""

    pass


class ValidationError(HotTopicError):
    """Malformed request or weight configuration.

    ``field`` names the offending input (e.g. ``"exposure"`` for a weight
    group whose sum is off) when one can be singled out.
    """

    def __init__(self, message, field=None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class NotFoundError(HotTopicError):
    pass


class CollectorError(HotTopicError):
    """One source's fetch failed (network, auth, quota, bad payload)."""

    def __init__(self, source, message):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class DuplicateRecordError(HotTopicError):
    """An analysis record already exists for the (keyword, date) pair."""

    def __init__(self, keyword, date):
        self.keyword = keyword
        self.date = date
        super().__init__(f"Analysis for '{keyword}' on {date} already exists")


class PersistenceError(HotTopicError):
    """Store unavailable or write failed."""

    pass


class CollaboratorError(HotTopicError):
    """Insight or report stage failed."""

    pass
