# Flask extensions initialization
# Helps avoid circular imports by initializing extensions without app context

from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_login import LoginManager

db = SQLAlchemy()
# async_mode and the rest of the server options are applied in create_app
socketio = SocketIO()
login_manager = LoginManager()

SOCKETIO_OPTIONS = dict(
    cors_allowed_origins='*',
    ping_timeout=60,
    ping_interval=25,
    manage_session=True,
    path='socket.io',
    engineio_logger=False,
    logger=False,
)
