"""
Service error translation
Maps service-layer exceptions onto HTTP status codes
"""

from fastapi import HTTPException, status

from shared.services import (
    DataSourceError,
    EmailAlreadyExistsError,
    InvalidEmailError,
    InvalidStatusTransitionError,
    UnauthorizedActionError,
    UserNotFoundError,
    UserServiceError,
)

from app.services.auth_service import AccountDisabledError, AuthenticationError, InvalidTokenError

STATUS_BY_ERROR = (
    (InvalidEmailError, status.HTTP_400_BAD_REQUEST),
    (InvalidTokenError, status.HTTP_400_BAD_REQUEST),
    (EmailAlreadyExistsError, status.HTTP_409_CONFLICT),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedActionError, status.HTTP_403_FORBIDDEN),
    (AccountDisabledError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (InvalidStatusTransitionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DataSourceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: UserServiceError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
