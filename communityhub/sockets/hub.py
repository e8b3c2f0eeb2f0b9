# Fan-out of typed events to every live connection

import logging
import threading

from flask import current_app

logger = logging.getLogger(__name__)

NEW_MESSAGE = 'new_message'
MESSAGE_DELETED = 'message_deleted'
MESSAGE_PINNED = 'message_pinned'
NEW_REACTION = 'new_reaction'
MEMBER_UPDATED = 'member_updated'
CHAT_SETTINGS_UPDATED = 'chat_settings_updated'
ONLINE_COUNT = 'online_count'
NOTIFICATION = 'notification'

EVENT_TYPES = frozenset([
    NEW_MESSAGE, MESSAGE_DELETED, MESSAGE_PINNED, NEW_REACTION,
    MEMBER_UPDATED, CHAT_SETTINGS_UPDATED, ONLINE_COUNT, NOTIFICATION,
])


class BroadcastHub:
    """Sends ``{'type': ..., **payload}`` envelopes to all connected sids.

    ``send(sid, envelope)`` does the actual transport write. Delivery is
    best effort: nothing is queued for late joiners and a failing connection
    is logged and skipped. Notification events go to everyone; clients drop
    the ones not addressed to them.
    """

    def __init__(self, send):
        self._send = send
        self._sids = set()
        self._lock = threading.Lock()

    def connect(self, sid):
        with self._lock:
            self._sids.add(sid)

    def disconnect(self, sid):
        with self._lock:
            self._sids.discard(sid)

    def connection_count(self):
        with self._lock:
            return len(self._sids)

    def broadcast(self, event_type, **payload):
        if event_type not in EVENT_TYPES:
            raise ValueError(f'unknown event type {event_type}')
        envelope = dict(payload, type=event_type)
        with self._lock:
            targets = list(self._sids)
        for sid in targets:
            try:
                self._send(sid, envelope)
            except Exception as e:
                logger.warning('[BROADCAST] %s to %s failed: %s', event_type, sid, e)
        logger.debug('[BROADCAST] %s sent to %d connections', event_type, len(targets))
        return envelope


def get_hub():
    return current_app.extensions['communityhub.hub']


def get_presence():
    return current_app.extensions['communityhub.presence']
