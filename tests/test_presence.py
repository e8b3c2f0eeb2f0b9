from communityhub.sockets.presence import PresenceTracker


def test_count_is_distinct_members():
    tracker = PresenceTracker()
    assert tracker.register('sid-1', 'alice') == 1
    assert tracker.register('sid-2', 'alice') == 1
    assert tracker.register('sid-3', 'bob') == 2
    assert tracker.online_members() == {'alice', 'bob'}


def test_member_stays_online_until_last_connection_closes():
    tracker = PresenceTracker()
    tracker.register('sid-1', 'alice')
    tracker.register('sid-2', 'alice')
    assert tracker.unregister('sid-1') == 1
    assert tracker.member_for('sid-1') is None
    assert tracker.unregister('sid-2') == 0


def test_unregister_unknown_sid_is_harmless():
    tracker = PresenceTracker()
    tracker.register('sid-1', 'alice')
    assert tracker.unregister('never-registered') == 1
    assert tracker.online_count() == 1
