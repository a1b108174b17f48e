"""Walkthrough of the dispatcher features.

Usage:
  python -m eventdispatch.demo
"""
import datetime
import json
import logging
from typing import Any, TypedDict

from .config import get_config
from .dispatcher import EventDispatcher
from .dto import WildcardEvent


class UserCreated(TypedDict):
    id: int
    name: str
    timestamp: datetime.datetime


class UserDeleted(TypedDict):
    id: int
    reason: str


# 'app:start' carries no payload
AppEvents = TypedDict('AppEvents', {
    'user:created': UserCreated,
    'user:deleted': UserDeleted,
    'app:start': None,
    'error': Exception,
})


def _describe(payload: Any) -> str:
    if payload is None:
        return 'No Payload'
    return json.dumps(payload, indent=2, default=str)


def build_dispatcher() -> EventDispatcher:
    emitter = EventDispatcher(AppEvents)

    emitter.on('user:created', lambda p: print(f"[ON] User Created: ID={p['id']}, Name={p['name']}, Time={p['timestamp']:%H:%M:%S}"))
    emitter.once('user:deleted', lambda p: print(
        f"[ONCE] User Deleted: ID={p['id']}. Reason: {p['reason']}. This message will only appear once."))

    def on_any(event: WildcardEvent):
        print(f'[WILDCARD *] Event fired: "{event.category}"\nPayload:\n{_describe(event.payload)}\n')

    def on_error(error: Exception):
        print(f'[ERROR] An error was caught by the emitter: {error}')

    def broken(payload):
        raise RuntimeError('Something went wrong in this specific listener!')

    emitter.on('*', on_any).on('error', on_error).on('user:created', broken)
    return emitter


def print_counts(emitter: EventDispatcher):
    print(f"- user:created listeners: {emitter.get_listener_count('user:created')}")
    print(f"- user:deleted listeners: {emitter.get_listener_count('user:deleted')}")
    print(f"- Wildcard (*) listeners: {emitter.get_listener_count('*')}")


def main():
    logging.basicConfig(level=get_config().LOG_LEVEL)
    emitter = build_dispatcher()

    print('Listener Counts Before Emit:')
    print_counts(emitter)

    print('\n--- Emitting Events ---')
    emitter.emit('app:start')
    emitter.emit('user:created', {'id': 101, 'name': 'Charlie', 'timestamp': datetime.datetime.now()})
    emitter.emit('user:deleted', {'id': 202, 'reason': 'Account cleanup'})
    # the once listener is gone by now
    emitter.emit('user:deleted', {'id': 303, 'reason': 'Redundant account'})
    print('-------------------------\n')

    print("Listener Counts After 'once' has fired:")
    print_counts(emitter)
    return emitter


if __name__ == '__main__':
    main()
