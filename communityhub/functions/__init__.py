# Functions package

from communityhub.functions.files import (
    allowed_file, is_image_file, save_uploaded_file, upload_path, make_thumbnail
)
from communityhub.functions.errors import (
    ChatError, PolicyRejection, AuthorizationFailure, ValidationFailure, NotFound, CollaboratorFailure
)

__all__ = [
    'allowed_file', 'is_image_file', 'save_uploaded_file', 'upload_path', 'make_thumbnail',
    'ChatError', 'PolicyRejection', 'AuthorizationFailure', 'ValidationFailure', 'NotFound',
    'CollaboratorFailure'
]
