"""Profile endpoint for the signed-in user."""

from fastapi import APIRouter, Depends

from blogify.models.envelope import Envelope
from blogify.models.user import Profile, TokenClaims
from blogify.services.auth import require_user
from blogify.services.users import get_profile

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=Envelope[Profile])
async def read_profile(claims: TokenClaims = Depends(require_user)):
    """The caller's public fields plus post statistics."""
    profile = await get_profile(claims.user_id)
    return Envelope(message="Profile retrieved successfully", data=profile)
