# Socket.IO event handlers

import json
import logging

from flask import request
from flask_login import current_user

from communityhub.sockets.hub import get_hub, get_presence, ONLINE_COUNT

logger = logging.getLogger(__name__)


def _broadcast_online_count(count):
    get_hub().broadcast(ONLINE_COUNT, count=count)


def _parse_payload(data):
    # Clients may send the envelope as a JSON string or as an object
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            return None
    return data if isinstance(data, dict) else None


def on_connect(auth=None):
    # Only logged-in members get a live connection
    if not current_user.is_authenticated:
        logger.info('[SOCKET CONNECT] Rejected unauthenticated connection %s', request.sid)
        return False
    get_hub().connect(request.sid)
    logger.info('[SOCKET CONNECT] Member %s connected (%s)', current_user.id, request.sid)


def on_message(data):
    # Registration binds this connection to the member for its lifetime
    payload = _parse_payload(data)
    if payload is None or payload.get('type') != 'register':
        return
    member_id = payload.get('memberId')
    if not member_id or not current_user.is_authenticated or str(member_id) != current_user.id:
        logger.info('[SOCKET REGISTER] Ignored registration for %r on %s', member_id, request.sid)
        return
    count = get_presence().register(request.sid, current_user.id)
    logger.info('[SOCKET REGISTER] Member %s registered %s, %d online', current_user.id, request.sid, count)
    _broadcast_online_count(count)


def on_disconnect(*args):
    # Clean close and transport errors both end up here
    sid = request.sid
    get_hub().disconnect(sid)
    count = get_presence().unregister(sid)
    logger.info('[SOCKET DISCONNECT] %s closed, %d online', sid, count)
    _broadcast_online_count(count)


def on_socket_error(e):
    # A failing handler must not take the connection state down with it
    logger.warning('[SOCKET ERROR] Handler failed on %s: %s', request.sid, e)


def register_socket_handlers(sio):
    # Bound per app: init_app creates a fresh server each time
    sio.on_event('connect', on_connect)
    sio.on_event('message', on_message)
    sio.on_event('disconnect', on_disconnect)
    sio.on_error_default(on_socket_error)
