# Error types surfaced to API callers as {'error': message}


class ChatError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class PolicyRejection(ChatError):
    # Message refused by the moderation pipeline; nothing persisted
    status_code = 403

    def __init__(self, reason, message):
        super().__init__(message)
        self.reason = reason

    def to_dict(self):
        return {'error': self.message, 'reason': self.reason}


class AuthorizationFailure(ChatError):
    status_code = 403


class ValidationFailure(ChatError):
    status_code = 400


class NotFound(ChatError):
    status_code = 404


class CollaboratorFailure(ChatError):
    # OTP provider or storage trouble; the caller may retry
    status_code = 502
