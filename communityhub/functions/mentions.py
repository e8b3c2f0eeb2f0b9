# @mention and reply resolution for notification fan-out

import re
from collections import namedtuple

NOTIFY_REPLY = 'reply'
NOTIFY_MENTION = 'mention'

NotificationTarget = namedtuple('NotificationTarget', ['recipient_id', 'type'])

_MENTION = re.compile(r'@(\w+(?:\s\w+)*)')


def _name_key(name):
    return ' '.join((name or '').split()).lower()


def extract_mentions(content, roster, sender_id=None):
    """Members mentioned in ``content``, in order of first appearance.

    Every ``@`` is followed by a run of words; the longest leading part of
    that run that equals a member's display name (case-insensitive) wins, so
    "@Ravi Sharma thanks" resolves to "Ravi Sharma". The sender is skipped.
    """
    if not content:
        return []
    by_name = {}
    for member in roster:
        by_name.setdefault(_name_key(member.name), member)

    mentioned = []
    seen = set()
    for match in _MENTION.finditer(content):
        words = match.group(1).split()
        for size in range(len(words), 0, -1):
            member = by_name.get(' '.join(words[:size]).lower())
            if member is not None:
                break
        else:
            continue
        if member.id == sender_id or member.id in seen:
            continue
        seen.add(member.id)
        mentioned.append(member)
    return mentioned


def resolve_fanout(content, roster, sender_id, reply_to=None):
    # Reply first, so a replied-to member who is also mentioned gets one 'reply'
    targets = []
    notified = set()
    if reply_to is not None and reply_to.sender_id != sender_id:
        targets.append(NotificationTarget(reply_to.sender_id, NOTIFY_REPLY))
        notified.add(reply_to.sender_id)
    for member in extract_mentions(content, roster, sender_id):
        if member.id in notified:
            continue
        notified.add(member.id)
        targets.append(NotificationTarget(member.id, NOTIFY_MENTION))
    return targets
