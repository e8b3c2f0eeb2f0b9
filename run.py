# Entry point for the Community Hub server

import logging
import os

from communityhub import create_app
from communityhub.extensions import socketio

app = create_app()
logger = logging.getLogger('communityhub')

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    logger.info('[SERVER STARTUP] Starting Community Hub...')
    logger.info('[SERVER CONFIG] Socket.IO running on port %d', port)
    socketio.run(app, host='0.0.0.0', port=port, allow_unsafe_werkzeug=True, debug=False)
