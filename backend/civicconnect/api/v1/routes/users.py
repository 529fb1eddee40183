"""Current-user endpoint."""

from fastapi import APIRouter, Depends

from civicconnect.core.auth import authenticate_request
from civicconnect.core.rbac import AuthContext
from civicconnect.schemas.user import UserProfile

router = APIRouter()


@router.get("/me", response_model=UserProfile)
async def get_me(context: AuthContext = Depends(authenticate_request)) -> UserProfile:
    """The authenticated caller's profile. The password hash is never included."""
    return UserProfile.model_validate(context.user)
