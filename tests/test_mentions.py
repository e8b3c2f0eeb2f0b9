from types import SimpleNamespace

from communityhub.functions.mentions import (
    NOTIFY_MENTION, NOTIFY_REPLY, NotificationTarget, extract_mentions, resolve_fanout
)

ROSTER = [
    SimpleNamespace(id='a', name='Asha'),
    SimpleNamespace(id='r', name='Ravi Sharma'),
    SimpleNamespace(id='s', name='Sam'),
]


def ids(members):
    return [m.id for m in members]


def test_single_word_mention():
    assert ids(extract_mentions('hi @Asha', ROSTER)) == ['a']


def test_multi_word_name_followed_by_text():
    assert ids(extract_mentions('@Ravi Sharma thanks for the update', ROSTER)) == ['r']


def test_mention_is_case_insensitive():
    assert ids(extract_mentions('@asha and @SAM', ROSTER)) == ['a', 's']


def test_unknown_names_and_duplicates():
    assert ids(extract_mentions('@Nobody @Asha @Asha', ROSTER)) == ['a']


def test_sender_never_mentions_themselves():
    assert extract_mentions('@Asha note to self', ROSTER, sender_id='a') == []


def test_reply_takes_precedence_over_mention():
    reply_to = SimpleNamespace(sender_id='a')
    targets = resolve_fanout('@Asha @Sam look', ROSTER, 'r', reply_to)
    assert targets == [NotificationTarget('a', NOTIFY_REPLY), NotificationTarget('s', NOTIFY_MENTION)]


def test_replying_to_own_message_notifies_nobody():
    reply_to = SimpleNamespace(sender_id='r')
    assert resolve_fanout('again', ROSTER, 'r', reply_to) == []


def test_file_message_reply_without_content():
    reply_to = SimpleNamespace(sender_id='s')
    assert resolve_fanout(None, ROSTER, 'a', reply_to) == [NotificationTarget('s', NOTIFY_REPLY)]
