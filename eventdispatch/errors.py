"""Exceptions raised by the dispatcher to its callers.

Listener faults are never raised to the emitter; they are delivered as
'error' events instead.
"""


class DispatcherError(Exception):
    pass


class UnknownCategoryError(DispatcherError, ValueError):
    """Raised when a category is not part of the dispatcher's contract,
    or when the wildcard identifier is emitted directly."""

    def __init__(self, category, reason: str = 'not part of the event contract'):
        self.category = category
        super().__init__(f"{category!r}: {reason}")
