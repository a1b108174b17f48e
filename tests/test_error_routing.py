import logging

from eventdispatch import EventDispatcher


class Err(Exception):
    pass


def _raise(payload):
    raise Err('listener failed')


def test_fault_is_delivered_to_error_listeners():
    d = EventDispatcher()
    errors = []
    d.on('z', _raise)
    d.on('error', errors.append)

    d.emit('z', {'a': 1})

    assert len(errors) == 1
    assert isinstance(errors[0], Err)
    assert str(errors[0]) == 'listener failed'


def test_fault_does_not_stop_siblings_or_wildcards():
    d = EventDispatcher()
    calls = []
    d.on('z', lambda p: calls.append('before'))
    d.on('z', _raise)
    d.on('z', lambda p: calls.append('after'))
    d.on('*', lambda e: calls.append(('*', e.category)))

    d.emit('z')

    # the 'error' emission happens inline, before the remaining siblings
    assert calls == ['before', ('*', 'error'), 'after', ('*', 'z')]


def test_fault_not_propagated_without_error_listeners(caplog):
    d = EventDispatcher()
    calls = []
    d.on('z', _raise)
    d.on('z', calls.append)

    with caplog.at_level(logging.DEBUG, logger='eventdispatch.dispatcher'):
        d.emit('z', 7)

    assert calls == [7]
    assert any('Unhandled fault' in r.getMessage() for r in caplog.records)


def test_wildcard_fault_routed_and_other_wildcards_still_run():
    d = EventDispatcher()
    errors = []
    seen = []

    def bad_wildcard(event):
        if event.category != 'error':
            raise Err('wildcard failed')

    d.on('*', bad_wildcard)
    d.on('*', lambda e: seen.append(e.category))
    d.on('error', errors.append)

    d.emit('z', 1)

    assert [str(e) for e in errors] == ['wildcard failed']
    assert seen == ['error', 'z']


def test_wildcard_sees_error_event_with_exception():
    d = EventDispatcher()
    events = []
    d.on('z', _raise)
    d.on('*', events.append)

    d.emit('z', 1)

    assert events[0].category == 'error'
    assert isinstance(events[0].payload, Err)
    assert events[1].category == 'z'


def test_failing_error_listener_does_not_recurse(caplog):
    d = EventDispatcher()
    calls = []

    def bad_error_listener(error):
        calls.append(error)
        raise Err('error listener failed too')

    d.on('error', bad_error_listener)
    d.on('z', _raise)

    with caplog.at_level(logging.ERROR, logger='eventdispatch.dispatcher'):
        d.emit('z')

    assert len(calls) == 1
    dropped = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(dropped) == 1
    assert 'Dropping fault' in dropped[0].getMessage()
    assert dropped[0].exc_info[0] is Err


def test_failing_error_listener_on_direct_error_emit_is_rerouted_once():
    d = EventDispatcher()
    calls = []

    def bad_error_listener(error):
        calls.append(str(error))
        raise Err('second')

    d.on('error', bad_error_listener)
    d.emit('error', Err('first'))

    assert calls == ['first', 'second']


def test_zero_hops_only_logs(caplog):
    d = EventDispatcher(max_error_hops=0)
    errors = []
    d.on('error', errors.append)
    d.on('z', _raise)

    with caplog.at_level(logging.ERROR, logger='eventdispatch.dispatcher'):
        d.emit('z')

    assert errors == []
    assert len(caplog.records) == 1


def test_two_hops_allows_nested_reroute():
    d = EventDispatcher(max_error_hops=2)
    calls = []

    def bad_error_listener(error):
        calls.append(str(error))
        raise Err('from error listener')

    d.on('error', bad_error_listener)
    d.on('z', _raise)
    d.emit('z')

    assert calls == ['listener failed', 'from error listener']


def test_negative_hops_rejected():
    import pytest

    with pytest.raises(ValueError):
        EventDispatcher(max_error_hops=-1)


def test_once_error_listener():
    d = EventDispatcher()
    errors = []
    d.once('error', errors.append)
    d.on('z', _raise)

    d.emit('z')
    d.emit('z')

    assert len(errors) == 1
    assert d.get_listener_count('error') == 0


def test_always_raising_wildcard_is_bounded(caplog):
    d = EventDispatcher()
    calls = []

    def bad_wildcard(event):
        calls.append(event.category)
        raise Err('wildcard always fails')

    d.on('*', bad_wildcard)

    with caplog.at_level(logging.ERROR, logger='eventdispatch.dispatcher'):
        d.emit('z', 1)

    assert calls == ['z', 'error']
    dropped = [r for r in caplog.records if 'Dropping fault' in r.getMessage()]
    assert len(dropped) == 1


def test_fault_in_emit_nested_under_error_delivery_is_dropped(caplog):
    d = EventDispatcher()
    errors = []

    def report(error):
        errors.append(error)
        d.emit('audit', str(error))

    d.on('error', report)
    d.on('audit', _raise)
    d.on('z', _raise)

    with caplog.at_level(logging.ERROR, logger='eventdispatch.dispatcher'):
        d.emit('z')

    # the audit listener's fault happens one 'error' delivery deep
    assert len(errors) == 1
    assert len(caplog.records) == 1
