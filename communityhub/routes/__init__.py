# Routes package

from communityhub.routes.auth import auth_bp
from communityhub.routes.main import main_bp
from communityhub.routes.api import api_bp

__all__ = ['auth_bp', 'main_bp', 'api_bp']
