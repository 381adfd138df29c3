"""Registration and login endpoints."""

from fastapi import APIRouter

from blogify.models.envelope import Envelope
from blogify.models.user import AuthResult, LoginRequest, RegisterRequest
from blogify.services import users

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Envelope[AuthResult], status_code=201)
async def register(body: RegisterRequest):
    """Create an account and return a bearer token for it."""
    result = await users.register(body.email, body.password, body.name)
    return Envelope(
        message="User registered successfully", status_code=201, data=result
    )


@router.post("/login", response_model=Envelope[AuthResult])
async def login(body: LoginRequest):
    result = await users.login(body.email, body.password)
    return Envelope(message="Login successful", data=result)
