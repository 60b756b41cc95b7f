"""
User Service Exceptions
"""


class UserServiceError(Exception):
    """Base error raised by the user service layer"""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
        self.message = message


class InvalidEmailError(UserServiceError):
    def __init__(self, message: str = "Invalid email format"):
        super().__init__(message)


class EmailAlreadyExistsError(UserServiceError):
    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(message)


class UserNotFoundError(UserServiceError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class UnauthorizedActionError(UserServiceError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class InvalidStatusTransitionError(UserServiceError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change status from {current} to {target}")
        self.current = current
        self.target = target


class DataSourceError(UserServiceError):
    """Raised by adapters when the backing store or API fails"""
