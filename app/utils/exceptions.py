from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES — Machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    UNAUTHORIZED            = "UNAUTHORIZED"
    INVALID_CREDENTIALS     = "INVALID_CREDENTIALS"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    IDENTITY_ERROR          = "IDENTITY_ERROR"
    OTP_INVALID             = "OTP_INVALID"
    OTP_EXPIRED             = "OTP_EXPIRED"
    OTP_NOT_FOUND           = "OTP_NOT_FOUND"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
    ):
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            }
        })
        self.message = message
        self.error_code = error_code


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED)


class InvalidCredentialsException(AppException):
    """Same message for unknown email and wrong password."""
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Invalid credentials", ErrorCode.INVALID_CREDENTIALS)


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class IdentityError(AppException):
    def __init__(self, user_id: int | None = None):
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"No user with id {user_id}" if user_id is not None else "Unknown user",
            ErrorCode.IDENTITY_ERROR,
        )


class OTPInvalidException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Invalid OTP", ErrorCode.OTP_INVALID)


class OTPExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "OTP has expired", ErrorCode.OTP_EXPIRED)


class OTPNotFoundException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "OTP not generated or has expired",
            ErrorCode.OTP_NOT_FOUND,
        )
