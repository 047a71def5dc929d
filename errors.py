class EcoBhanduError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(EcoBhanduError):
    status_code = 400


class AuthenticationError(EcoBhanduError):
    status_code = 401


class AuthorizationError(EcoBhanduError):
    status_code = 403


class NotFoundError(EcoBhanduError):
    status_code = 404


class ConflictError(EcoBhanduError):
    status_code = 409


class InsufficientPointsError(EcoBhanduError):
    status_code = 400
