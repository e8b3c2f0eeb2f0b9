import pytest

from communityhub.sockets.hub import BroadcastHub, NEW_MESSAGE, ONLINE_COUNT


class Recorder:
    def __init__(self, broken=()):
        self.sent = []
        self.broken = set(broken)

    def __call__(self, sid, envelope):
        if sid in self.broken:
            raise ConnectionError('socket gone')
        self.sent.append((sid, envelope))


def test_broadcast_reaches_every_connection():
    send = Recorder()
    hub = BroadcastHub(send)
    hub.connect('a')
    hub.connect('b')
    envelope = hub.broadcast(ONLINE_COUNT, count=2)
    assert envelope == {'type': 'online_count', 'count': 2}
    assert sorted(sid for sid, _ in send.sent) == ['a', 'b']


def test_failing_connection_does_not_stop_the_rest():
    send = Recorder(broken={'a'})
    hub = BroadcastHub(send)
    for sid in ('a', 'b', 'c'):
        hub.connect(sid)
    hub.broadcast(NEW_MESSAGE, message={'id': 'm1'})
    assert sorted(sid for sid, _ in send.sent) == ['b', 'c']


def test_disconnected_sids_receive_nothing():
    send = Recorder()
    hub = BroadcastHub(send)
    hub.connect('a')
    hub.disconnect('a')
    hub.disconnect('a')
    hub.broadcast(ONLINE_COUNT, count=0)
    assert send.sent == []
    assert hub.connection_count() == 0


def test_unknown_event_type_rejected():
    hub = BroadcastHub(Recorder())
    with pytest.raises(ValueError):
        hub.broadcast('typing')
