# logbridge/errors.py

"""
Error taxonomy shared by the gateway services and the REST dispatcher.

Every error carries a stable ``kind`` and the HTTP status the dispatcher
answers with. Nothing in the service layer recovers from these; they are
raised to the caller as-is.
"""

from typing import Optional, Dict, Any


class GatewayError(Exception):
    """Base exception for gateway operations"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "type": self.kind,
                "message": self.message
            }
        }


class ValidationError(GatewayError):
    """Malformed or missing request fields"""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotAuthenticatedError(GatewayError):
    """Caller did not present a valid API token"""
    status_code = 401


class PermissionDeniedError(GatewayError):
    """Caller lacks the permission required by the route"""
    status_code = 403


class AuthenticationError(GatewayError):
    """Remote API rejected the supplied credentials"""
    status_code = 401


class RegionUnavailableError(GatewayError):
    """Region endpoint unreachable or unsupported"""
    status_code = 503


class StreamNotFoundError(GatewayError):
    """Named stream does not exist"""
    status_code = 404


class OperationTimeoutError(GatewayError):
    """Remote call did not finish within its budget"""
    status_code = 504


class RemoteServiceError(GatewayError):
    """Any other remote fault; carries the original diagnostic text"""
    status_code = 502


class DuplicateInputError(GatewayError):
    """An equivalent input is already registered"""
    status_code = 409


class InputMisfireError(Exception):
    """Input could not be launched"""
    pass
