import threading
from decimal import Decimal

import pytest

from communityhub.extensions import db
from communityhub.functions import store
from communityhub.functions.errors import NotFound, ValidationFailure
from communityhub.models import Message, Notification, Reaction


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture
def member(ctx):
    return store.create_member('Asha', '9000000001')


def test_duplicate_phone_rejected(member):
    with pytest.raises(ValidationFailure):
        store.create_member('Other', '9000000001')


def test_reaction_toggle_sequence(member):
    msg = store.create_message(member.id, content='hello')
    assert store.toggle_reaction(msg.id, member.id, '👍') == 'added'
    assert store.toggle_reaction(msg.id, member.id, '🎉') == 'replaced'
    assert [r.emoji for r in store.list_reactions(msg.id)] == ['🎉']
    assert store.toggle_reaction(msg.id, member.id, '🎉') == 'removed'
    assert store.list_reactions(msg.id) == []


def test_same_emoji_twice_leaves_no_reaction(member):
    msg = store.create_message(member.id, content='hello')
    store.toggle_reaction(msg.id, member.id, '👍')
    store.toggle_reaction(msg.id, member.id, '👍')
    assert Reaction.query.filter_by(message_id=msg.id).count() == 0


def test_soft_delete_clears_pin(member):
    msg = store.create_message(member.id, content='important')
    assert store.toggle_pin(msg.id).is_pinned
    deleted = store.soft_delete_message(msg.id)
    assert deleted.is_deleted and not deleted.is_pinned
    assert store.list_messages() == []
    assert store.toggle_pin(msg.id) is None
    with pytest.raises(NotFound):
        store.require_message(msg.id)


def test_file_message_drops_content(member):
    msg = store.create_message(member.id, content='ignored', message_type='image',
                               file_url='/uploads/x.png', file_name='x.png')
    assert msg.content is None and msg.file_url == '/uploads/x.png'


def test_notification_is_unique_per_recipient_message_and_type(member):
    other = store.create_member('Ravi', '9000000002')
    msg = store.create_message(member.id, content='@Ravi hi')
    assert store.create_notification(other.id, member.id, msg.id, 'mention') is not None
    assert store.create_notification(other.id, member.id, msg.id, 'mention') is None
    assert store.unread_notification_count(other.id) == 1
    store.mark_notifications_read(other.id)
    assert store.unread_notification_count(other.id) == 0


def test_deleting_member_keeps_their_messages(member):
    other = store.create_member('Ravi', '9000000002')
    msg = store.create_message(member.id, content='still here')
    store.toggle_reaction(msg.id, member.id, '👍')
    store.create_notification(other.id, member.id, msg.id, 'mention')

    store.delete_member(member)

    assert store.get_message(msg.id) is not None
    assert Reaction.query.count() == 0
    assert Notification.query.count() == 0
    assert Message.query.count() == 1


def test_project_updates_accumulate(member):
    store.record_project_update(member, 2, Decimal('1500.50'), 'https://example.com/a')
    store.record_project_update(member, 1, 499.5, 'https://example.com/b')
    assert member.projects_completed == 3
    assert member.total_project_value == Decimal('2000.00')
    assert len(store.list_project_updates(member.id)) == 2


def test_leaderboard_orders_by_value_and_skips_inactive(ctx):
    low = store.create_member('Low', '9000000011')
    high = store.create_member('High', '9000000012')
    gone = store.create_member('Gone', '9000000013')
    store.record_project_update(low, 1, 10, 'https://example.com')
    store.record_project_update(high, 1, 100, 'https://example.com')
    store.record_project_update(gone, 1, 1000, 'https://example.com')
    store.update_member(gone, is_active=False)

    names = [m.name for m in store.leaderboard(2)]
    assert names == ['High', 'Low']


def test_bulk_create_skips_existing_and_repeated_phones(member):
    created = store.bulk_create_members([
        {'name': 'Asha again', 'phone': '9000000001'},
        {'name': 'New', 'phone': '9000000003'},
        {'name': 'New twice', 'phone': '9000000003'},
    ])
    assert [m.name for m in created] == ['New']


def test_chat_settings_toggle(ctx):
    assert store.get_chat_settings().chat_disabled is False
    assert store.toggle_chat_setting('chat_disabled').chat_disabled is True
    assert store.toggle_chat_setting('chat_disabled').chat_disabled is False
    with pytest.raises(ValueError):
        store.toggle_chat_setting('disappear_after_hours')


def test_blocked_keywords_normalised_and_unique(ctx):
    entry = store.add_blocked_keyword('  SPAM ')
    assert entry.keyword == 'spam'
    with pytest.raises(ValidationFailure):
        store.add_blocked_keyword('spam')
    assert store.update_blocked_keyword(entry.id, 'Scam').keyword == 'scam'
    assert store.remove_blocked_keyword(entry.id)
    assert not store.remove_blocked_keyword(entry.id)


def test_third_identical_toggle_adds_reaction_again(member):
    msg = store.create_message(member.id, content='hello')
    actions = [store.toggle_reaction(msg.id, member.id, '👍') for _ in range(3)]
    assert actions == ['added', 'removed', 'added']
    assert [r.emoji for r in store.list_reactions(msg.id)] == ['👍']


def test_concurrent_toggles_leave_at_most_one_reaction(app, member):
    msg_id = store.create_message(member.id, content='race').id
    member_id = member.id
    db.session.close()

    barrier = threading.Barrier(2)
    results, errors = [], []

    def toggle():
        barrier.wait()
        try:
            with app.app_context():
                results.append(store.toggle_reaction(msg_id, member_id, '👍'))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=toggle) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert sorted(results) == ['added', 'removed']
    assert Reaction.query.filter_by(message_id=msg_id, member_id=member_id).count() <= 1
