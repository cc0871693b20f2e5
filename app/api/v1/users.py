from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_service, get_current_user
from app.models.user import User
from app.schemas.auth import UserOut
from app.schemas.user import UserUpdateRequest
from app.schemas.common import SuccessResponse, ErrorResponse, success_response
from app.services.account_service import AccountService, serialize_user

router = APIRouter(prefix="/users")


# GET /users/me — bearer token required
@router.get("/me", status_code=status.HTTP_200_OK, summary="Get current user profile",
            response_model=SuccessResponse[UserOut], responses={401: {"model": ErrorResponse}})
def get_me(current_user: User = Depends(get_current_user)):
    return success_response("Profile retrieved", serialize_user(current_user))


# GET /users/{id}
@router.get("/{user_id}", status_code=status.HTTP_200_OK, summary="Get user by ID",
            response_model=SuccessResponse[UserOut], responses={404: {"model": ErrorResponse}})
def get_user(
    user_id: int,
    db:      Session        = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    data = service.get_user(db, user_id)
    return success_response("User found", data)


# PUT /users/{id}
@router.put("/{user_id}", status_code=status.HTTP_200_OK, summary="Update user",
            response_model=SuccessResponse[UserOut],
            responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}})
def update_user(
    user_id: int,
    body:    UserUpdateRequest,
    db:      Session        = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    data = service.update_user(
        db, user_id,
        name=body.name,
        email=str(body.email) if body.email is not None else None,
        password=body.password,
    )
    return success_response("User updated successfully!", data)


# DELETE /users/{id}
@router.delete("/{user_id}", status_code=status.HTTP_200_OK, summary="Delete user",
               response_model=SuccessResponse, responses={404: {"model": ErrorResponse}})
def delete_user(
    user_id: int,
    db:      Session        = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    service.delete_user(db, user_id)
    return success_response("User deleted successfully!", None)
