"""Exception types raised at pipeline stage boundaries."""


class HotspotflowError(Exception):
    """Base class for all hotspotflow errors."""


class GeometryError(HotspotflowError, ValueError):
    """Invalid or unreadable geometry, or an unusable coordinate reference system."""


class DimensionMismatchError(HotspotflowError, ValueError):
    """A value vector and a weights matrix disagree on the number of units."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Value vector has {actual} entries but weights matrix covers {expected} units"
        )


class JoinError(HotspotflowError, KeyError):
    """Attribute join could not match keys unambiguously."""

    def __init__(self, message: str, keys: list[str] | None = None) -> None:
        self.message = message
        self.keys = list(keys or [])
        super().__init__(message)

    def __str__(self) -> str:
        return self.message
