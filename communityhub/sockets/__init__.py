# Socket handlers package

from communityhub.sockets.events import register_socket_handlers
from communityhub.sockets.hub import BroadcastHub, get_hub, get_presence
from communityhub.sockets.presence import PresenceTracker

__all__ = ['BroadcastHub', 'PresenceTracker', 'get_hub', 'get_presence', 'register_socket_handlers']
