"""Authentication API endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, UploadFile, status

from auth import AuthManager, get_current_user
from auth.models import LoginRequest, PasswordChange, RegisterRequest
from media import MediaStore
from users import UserManager
from users.models import AccountOut, ProfileUpdate

from ..deps import get_auth_manager, get_media_store, get_user_manager
from ..responses import success_response

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)


def _session(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user": AccountOut.model_validate(result["user"]),
        "token": result["token"],
        "expires_at": result["expires_at"]
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    manager: AuthManager = Depends(get_auth_manager)
):
    """Create an account and return a session token."""
    result = await manager.register(**body.model_dump())
    return success_response(
        _session(result),
        message="User registered successfully",
        status_code=status.HTTP_201_CREATED
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    manager: AuthManager = Depends(get_auth_manager)
):
    """Verify credentials and return a session token."""
    result = await manager.login(body.email, body.password)
    return success_response(_session(result), message="Login successful")


@router.get("/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    """Return the authenticated user's account."""
    return success_response({"user": AccountOut.model_validate(user)})


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    users: UserManager = Depends(get_user_manager)
):
    """Partially update the authenticated user's profile."""
    updated = await users.update_profile(user["id"], **body.model_dump(exclude_unset=True))
    return success_response(
        {"user": AccountOut.model_validate(updated)},
        message="Profile updated successfully"
    )


@router.post("/profile/photo")
async def upload_photo(
    photo: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
    users: UserManager = Depends(get_user_manager),
    media: MediaStore = Depends(get_media_store)
):
    """Upload a profile photo and store its URL on the profile."""
    try:
        content = await photo.read()
    finally:
        await photo.close()
    url = await media.accept(content, photo.content_type)
    updated = await users.set_photo(user["id"], url)
    return success_response(
        {"user": AccountOut.model_validate(updated), "photo": url},
        message="Photo uploaded successfully"
    )


@router.put("/change-password")
async def change_password(
    body: PasswordChange,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: AuthManager = Depends(get_auth_manager)
):
    """Change the authenticated user's password."""
    await manager.change_password(user["id"], body.current_password, body.new_password)
    return success_response(message="Password changed successfully")


# Export the router
__all__ = ['router']
