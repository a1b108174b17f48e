"""Synchronous in-process publish/subscribe dispatcher.

Importing the package exposes the dispatcher, its default instance `bus`,
and the reserved WILDCARD / ERROR identifiers.
"""
from .dispatcher import EventDispatcher, bus
from .dto import ERROR, WILDCARD, WildcardEvent
from .errors import DispatcherError, UnknownCategoryError

__all__ = [
    "EventDispatcher",
    "bus",
    "WildcardEvent",
    "WILDCARD",
    "ERROR",
    "DispatcherError",
    "UnknownCategoryError",
]
