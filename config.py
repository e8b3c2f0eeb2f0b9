# Configuration file for the Community Hub application

import json
import os

# Try to load configuration from `config.json` located next to this file.
# If the file is missing or a key is absent, fall back to the defaults below.
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
_JSON_PATH = os.path.join(_BASE_DIR, 'config.json')

# Defaults
_defaults = {
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///communityhub.db',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SECRET_KEY': 'community-hub-secret',
    'PRIMARY_ADMIN_PHONE': '7030809030',
    'JOIN_CONTACT_PHONE': '7030809030',
    'OTP_TTL_SECONDS': 5 * 60,
    'SESSION_LIFETIME_HOURS': 6,
    'WATI_API_ENDPOINT': None,
    'WATI_API_TOKEN': None,
    'WATI_TEMPLATE_NAME': 'otp_community_login',
    'WATI_TIMEOUT_SECONDS': 10,
    'UPLOAD_FOLDER': 'uploads',
    'MAX_CONTENT_LENGTH': 10 * 1024 * 1024,
    'MESSAGE_FILE_EXTENSIONS': ['png', 'jpg', 'jpeg', 'gif', 'webp', 'pdf'],
    'IMAGE_EXTENSIONS': ['png', 'jpg', 'jpeg', 'gif', 'webp'],
    'PROFILE_PICTURE_SIZE': [256, 256],
    'LEADERBOARD_LIMIT': 50,
    'SOCKETIO_ASYNC_MODE': 'eventlet',
    'LOG_LEVEL': 'INFO',
}

# Values that may be supplied through the environment instead of config.json
_env_keys = {
    'SECRET_KEY': 'SECRET_KEY',
    'SQLALCHEMY_DATABASE_URI': 'DATABASE_URL',
    'WATI_API_ENDPOINT': 'WATI_API_ENDPOINT',
    'WATI_API_TOKEN': 'WATI_API_TOKEN',
    'LOG_LEVEL': 'LOG_LEVEL',
}

_cfg = {}
try:
    with open(_JSON_PATH, 'r', encoding='utf-8') as f:
        _cfg = json.load(f) or {}
except FileNotFoundError:
    # No config.json present, we'll use defaults
    _cfg = {}
except ValueError:
    # If parsing fails, fall back to defaults but continue
    _cfg = {}


# Helper to get value from the environment, JSON or defaults
def _get(key):
    env_name = _env_keys.get(key)
    if env_name and os.environ.get(env_name):
        return os.environ[env_name]
    return _cfg.get(key, _defaults.get(key))


# Database
SQLALCHEMY_DATABASE_URI = _get('SQLALCHEMY_DATABASE_URI')
SQLALCHEMY_TRACK_MODIFICATIONS = _get('SQLALCHEMY_TRACK_MODIFICATIONS')

# Security and sessions
SECRET_KEY = _get('SECRET_KEY')
SESSION_LIFETIME_HOURS = int(_get('SESSION_LIFETIME_HOURS'))

# Community identity
PRIMARY_ADMIN_PHONE = str(_get('PRIMARY_ADMIN_PHONE'))
JOIN_CONTACT_PHONE = str(_get('JOIN_CONTACT_PHONE'))

# One-time codes over WhatsApp (WATI)
OTP_TTL_SECONDS = int(_get('OTP_TTL_SECONDS'))
WATI_API_ENDPOINT = _get('WATI_API_ENDPOINT')
WATI_API_TOKEN = _get('WATI_API_TOKEN')
WATI_TEMPLATE_NAME = _get('WATI_TEMPLATE_NAME')
WATI_TIMEOUT_SECONDS = float(_get('WATI_TIMEOUT_SECONDS'))

# File uploads
UPLOAD_FOLDER = _get('UPLOAD_FOLDER')
MAX_CONTENT_LENGTH = int(_get('MAX_CONTENT_LENGTH'))

# Allowed file extensions (store as sets in runtime for quick membership checks)
MESSAGE_FILE_EXTENSIONS = set(_get('MESSAGE_FILE_EXTENSIONS') or [])
IMAGE_EXTENSIONS = set(_get('IMAGE_EXTENSIONS') or [])
PROFILE_PICTURE_SIZE = tuple(_get('PROFILE_PICTURE_SIZE') or (256, 256))

LEADERBOARD_LIMIT = int(_get('LEADERBOARD_LIMIT'))

# Realtime server and logging
SOCKETIO_ASYNC_MODE = _get('SOCKETIO_ASYNC_MODE')
LOG_LEVEL = _get('LOG_LEVEL')


def init_upload_folders(base=None):
    # Create upload directory if it doesn't exist
    os.makedirs(base or UPLOAD_FOLDER, exist_ok=True)
