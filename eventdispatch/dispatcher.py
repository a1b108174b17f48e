"""In-process event dispatcher with one-shot and wildcard subscriptions.

Listeners are invoked synchronously, in registration order, on the
emitting thread. A listener that raises never reaches the emitter: the
exception is re-emitted as an 'error' event through the same dispatcher
and delivery carries on with the remaining listeners.

Not thread-safe; callers sharing a dispatcher across threads must lock
around it themselves.
"""
import logging
from typing import Any, Callable, Dict, Hashable, List, Optional

from .config import get_config
from .dto import ERROR, WILDCARD, WildcardEvent, contract_categories
from .errors import UnknownCategoryError

_logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]
WildcardListener = Callable[[WildcardEvent], None]


class _OnceListener:
    """Adapter registered by `once`; unregisters itself after the first call."""

    def __init__(self, dispatcher: 'EventDispatcher', category: Hashable, listener: Listener):
        self.dispatcher = dispatcher
        self.category = category
        self.listener = listener
        self.fired = False

    def __call__(self, payload: Any) -> None:
        # a re-entrant emit of the same category can reach us again before
        # the finally below has run
        if self.fired:
            return
        self.fired = True
        try:
            self.listener(payload)
        finally:
            self.dispatcher.off(self.category, self)

    def __repr__(self):
        return f'<once {self.listener!r}>'


class _ByIdentity:
    """Registry key for callables that cannot be hashed."""
    __slots__ = ('listener',)

    def __init__(self, listener: Listener):
        self.listener = listener

    def __hash__(self):
        return id(self.listener)

    def __eq__(self, other):
        return isinstance(other, _ByIdentity) and other.listener is self.listener


def _key(listener: Listener) -> Hashable:
    # hashable callables keep equality matching, so bound methods fetched
    # twice from the same object still match
    try:
        hash(listener)
    except TypeError:
        return _ByIdentity(listener)
    return listener


class EventDispatcher:
    """Synchronous publish/subscribe hub.

    Fault routing is bounded by `max_error_hops`, counted as the number of
    'error' deliveries currently in progress. Every emit nested inside an
    'error' delivery counts as being at that depth: with the default of 1,
    a fault raised by any listener reached from an 'error' listener (even
    through an emit of an ordinary category) is logged and dropped rather
    than routed to 'error' again.
    """

    def __init__(self, contract: Optional[Any] = None, max_error_hops: Optional[int] = None):
        """Create an empty dispatcher.

        contract: optional closed category->payload-type mapping (a TypedDict
            or any Mapping). When given, unknown categories are rejected by
            `on`, `once` and `emit`. Payloads are never checked.
        max_error_hops: nesting limit for 'error' re-emission; defaults to
            the EVENTDISPATCH_MAX_ERROR_HOPS setting, read on first use.
        """
        # insertion-ordered: registry key -> listener
        self._listeners: Dict[Hashable, Dict[Hashable, Listener]] = {}
        self._wildcard_listeners: Dict[Hashable, WildcardListener] = {}
        self._contract = contract_categories(contract)
        if max_error_hops is not None and max_error_hops < 0:
            raise ValueError('max_error_hops must be >= 0')
        self._max_error_hops = max_error_hops
        self._error_depth = 0

    @property
    def max_error_hops(self) -> int:
        if self._max_error_hops is None:
            self._max_error_hops = get_config().MAX_ERROR_HOPS
        return self._max_error_hops

    @property
    def categories(self) -> Optional[frozenset]:
        """Category names allowed by the contract, or None when unrestricted."""
        if self._contract is None:
            return None
        return frozenset(self._contract)

    def _check_category(self, category: Hashable) -> None:
        if self._contract is not None and category != WILDCARD and category not in self._contract:
            raise UnknownCategoryError(category)

    # -- subscription --------------------------------------------------------

    def on(self, category: Hashable, listener: Listener) -> 'EventDispatcher':
        """Register `listener` for `category`, or for every category with '*'.

        Wildcard listeners receive a WildcardEvent(category, payload).
        Registering the same listener twice is a no-op.
        """
        if not callable(listener):
            raise TypeError('listener must be callable')
        self._check_category(category)
        if category == WILDCARD:
            registered = self._wildcard_listeners
        else:
            registered = self._listeners.setdefault(category, {})
        registered.setdefault(_key(listener), listener)
        _logger.debug('Subscribed %r to %r', listener, category)
        return self

    def once(self, category: Hashable, listener: Listener) -> 'EventDispatcher':
        """Register `listener` for at most one invocation.

        The registration is dropped after the first call even if the
        listener raises.
        """
        if not callable(listener):
            raise TypeError('listener must be callable')
        return self.on(category, _OnceListener(self, category, listener))

    def off(self, category: Hashable, listener: Listener) -> 'EventDispatcher':
        """Unregister `listener`. Unknown categories and listeners are ignored.

        A callable passed to `once` can be given here directly; its pending
        one-shot registration is removed.
        """
        if category == WILDCARD:
            registered = self._wildcard_listeners
        else:
            registered = self._listeners.get(category)
            if registered is None:
                return self
        key = _key(listener)
        if key not in registered:
            key = _find_once(registered, key)
            if key is None:
                return self
        del registered[key]
        if not registered and category != WILDCARD:
            del self._listeners[category]
        _logger.debug('Unsubscribed %r from %r', listener, category)
        return self

    def remove_all_listeners(self, category: Optional[Hashable] = None) -> 'EventDispatcher':
        """Clear one category (or the wildcard set with '*'), or everything."""
        if category is None:
            self._listeners.clear()
            self._wildcard_listeners.clear()
        elif category == WILDCARD:
            self._wildcard_listeners.clear()
        else:
            self._listeners.pop(category, None)
        _logger.debug('Removed all listeners for %s', 'every category' if category is None else repr(category))
        return self

    def get_listener_count(self, category: Hashable) -> int:
        if category == WILDCARD:
            return len(self._wildcard_listeners)
        return len(self._listeners.get(category, ()))

    # -- publishing ----------------------------------------------------------

    def emit(self, category: Hashable, payload: Any = None) -> None:
        """Deliver `payload` to the listeners of `category`, then to wildcard listeners.

        Both listener sets are copied before anything is invoked, so
        subscriptions changed by a listener apply from the next emit on.
        """
        if category == WILDCARD:
            raise UnknownCategoryError(category, "the wildcard identifier cannot be emitted")
        self._check_category(category)
        handlers: List[Listener] = list(self._listeners.get(category, {}).values())
        wildcard_handlers: List[WildcardListener] = list(self._wildcard_listeners.values())

        for handler in handlers:
            self._invoke(category, handler, payload)
        if wildcard_handlers:
            event = WildcardEvent(category, payload)
            for handler in wildcard_handlers:
                self._invoke(category, handler, event)

    def _invoke(self, category: Hashable, handler: Callable[[Any], None], arg: Any) -> None:
        try:
            handler(arg)
        except Exception as exc:
            self._route_fault(category, handler, exc)

    def _route_fault(self, category: Hashable, handler: Callable[[Any], None], exc: Exception) -> None:
        if self._error_depth >= self.max_error_hops:
            _logger.error('Dropping fault from %r raised while handling %r', handler, category, exc_info=exc)
            return
        if not self._listeners.get(ERROR) and not self._wildcard_listeners:
            _logger.debug('Unhandled fault from %r for %r: %s', handler, category, exc)
            return
        _logger.debug('Routing fault from %r for %r to %r', handler, category, ERROR)
        self._error_depth += 1
        try:
            self.emit(ERROR, exc)
        finally:
            self._error_depth -= 1


def _find_once(registered: Dict[Hashable, Listener], key: Hashable) -> Optional[Hashable]:
    for candidate_key, candidate in registered.items():
        if isinstance(candidate, _OnceListener) and _key(candidate.listener) == key:
            return candidate_key
    return None


# single default dispatcher for in-process usage
bus = EventDispatcher()
