"""User authentication controller endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.core.security import ClerkAuthenticator
from app.database import get_db
from app.domains.user.service import UserService
from app.schemas.user import AuthResponse, UserLoginRequest, UserResponse
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])
auth = ClerkAuthenticator()


def to_user_response(user: User) -> UserResponse:
    response = UserResponse.model_validate(user)
    response.messaging_enabled = not UserService.is_free_tier(user)
    return response


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate user with Clerk JWT token.

    Verifies the token with Clerk and returns the local profile, creating it
    on first login and syncing the membership plan claim.
    """
    payload = await auth.verify_token(login_data.token)
    clerk_user_id = payload.get("sub")

    if not clerk_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    user_service = UserService(db)
    user = await user_service.get_or_create_user(clerk_user_id, payload)

    return AuthResponse(user=to_user_response(user), message="Login successful")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information.

    ``messaging_enabled`` tells clients whether to show the messaging UI or
    the upgrade prompt.
    """
    return to_user_response(current_user)
