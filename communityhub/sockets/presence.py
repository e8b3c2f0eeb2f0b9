# Who is online, keyed by live socket connection

import threading


class PresenceTracker:
    """Maps connection sids to member ids.

    One member may hold several connections (tabs, devices); the online
    count is the number of distinct members. Bindings are only removed when
    the transport closes or errors.
    """

    def __init__(self):
        self._connections = {}
        self._lock = threading.Lock()

    def register(self, sid, member_id):
        with self._lock:
            self._connections[sid] = member_id
            return self._count()

    def unregister(self, sid):
        with self._lock:
            self._connections.pop(sid, None)
            return self._count()

    def member_for(self, sid):
        with self._lock:
            return self._connections.get(sid)

    def online_count(self):
        with self._lock:
            return self._count()

    def online_members(self):
        with self._lock:
            return set(self._connections.values())

    def _count(self):
        return len(set(self._connections.values()))
