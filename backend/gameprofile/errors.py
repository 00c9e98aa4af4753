"""Error taxonomy shared by services and HTTP handlers.

Services raise these; the app factory renders them as JSON with the
matching status code. Every error is local to the request that raised it.
"""


class ProfileServiceError(Exception):
    status_code = 500
    default_message = 'Internal error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(ProfileServiceError):
    status_code = 400
    default_message = 'Invalid request'


class Unauthorized(ProfileServiceError):
    status_code = 401
    default_message = 'Failed to authenticate token.'

    def to_dict(self):
        return {'auth': False, 'message': self.message}


class NoCredentials(Unauthorized):
    default_message = 'No credentials sent!'

    def to_dict(self):
        return {'error': self.message}


class NotFound(ProfileServiceError):
    status_code = 404
    default_message = 'No matching profiles'


class Conflict(ProfileServiceError):
    status_code = 409
    default_message = 'A profile cannot befriend itself'


class StorageFault(ProfileServiceError):
    status_code = 500
    default_message = 'Storage failure'
