from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_service
from app.schemas.auth import (
    RegisterRequest, LoginRequest, ForgotPasswordRequest,
    VerifyOTPRequest, ResetPasswordRequest,
    UserOut, LoginResponse, OTPVerifyResponse,
)
from app.schemas.common import SuccessResponse, ErrorResponse, success_response
from app.services.account_service import AccountService

router = APIRouter(prefix="/auth")


# ─── POST /auth/register ──────────────────────────────────────────────────────
@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
    response_model=SuccessResponse[UserOut],
    responses={409: {"model": ErrorResponse}},
)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """
    Register a new user.
    - Email must be unique.
    - Password minimum 8 characters.
    """
    user = service.register(db, data.name, str(data.email), data.password)
    return success_response("User registered successfully!", user)


# ─── POST /auth/login ─────────────────────────────────────────────────────────
@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    summary="Login and receive a bearer token",
    response_model=SuccessResponse[LoginResponse],
    responses={401: {"model": ErrorResponse}},
)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    result = service.login(db, str(data.email), data.password)
    return success_response("Login successful!", result)


# ─── POST /auth/forgot-password ───────────────────────────────────────────────
@router.post(
    "/forgot-password",
    status_code=status.HTTP_200_OK,
    summary="Request an OTP for password reset",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}},
)
def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Mails a 6-digit OTP valid for a few minutes. The code is never echoed back."""
    service.forgot_password(db, str(data.email))
    return success_response("OTP sent successfully! Please check your email.", None)


# ─── POST /auth/verify-otp ────────────────────────────────────────────────────
@router.post(
    "/verify-otp",
    status_code=status.HTTP_200_OK,
    summary="Verify the password reset OTP",
    response_model=SuccessResponse[OTPVerifyResponse],
    responses={400: {"model": ErrorResponse}},
)
def verify_otp(
    data: VerifyOTPRequest,
    service: AccountService = Depends(get_account_service),
):
    reset_token = service.verify_otp(data.userId, data.otp)
    return success_response("OTP verified successfully.", {"resetToken": reset_token})


# ─── POST /auth/reset-password ────────────────────────────────────────────────
@router.post(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    summary="Reset password after OTP verification",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse}},
)
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    service.reset_password(db, data.userId, data.password, data.resetToken)
    return success_response("Password reset successfully.", None)
