"""User registration, login and profile."""

import logging
import uuid
from datetime import datetime, timezone

from blogify.errors import AuthError, ConflictError, NotFoundError
from blogify.models.post import PostStatus
from blogify.models.user import AuthResult, Profile, ProfileStats, User, UserRole
from blogify.services.auth import hash_password, issue_token, verify_password
from blogify.services.gateway import POSTS, USERS, DuplicateKeyError, get_gateway

logger = logging.getLogger(__name__)


async def get_user(user_id: str) -> User | None:
    doc = await get_gateway().find_one(USERS, {"id": user_id})
    return User.model_validate(doc) if doc else None


async def register(email: str, password: str, name: str) -> AuthResult:
    """Create a user and return a signed token for them."""
    gateway = get_gateway()
    email = email.strip().lower()

    if await gateway.find_one(USERS, {"email": email}):
        raise ConflictError("User already exists", errors={"email": "email already exists"})

    now = datetime.now(timezone.utc)
    user = User(
        id=uuid.uuid4().hex,
        email=email,
        name=name.strip(),
        role=UserRole.USER,
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    try:
        await gateway.create(USERS, user.model_dump(by_alias=True))
    except DuplicateKeyError as exc:
        # Lost a race with a concurrent registration
        raise ConflictError(
            "User already exists", errors={exc.field: f"{exc.field} already exists"}
        ) from exc

    logger.info("Registered user %s", user.id)
    return AuthResult(token=issue_token(user), user=user.to_public())


async def login(email: str, password: str) -> AuthResult:
    doc = await get_gateway().find_one(USERS, {"email": email.strip().lower()})
    user = User.model_validate(doc) if doc else None
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")
    logger.info("User %s logged in", user.id)
    return AuthResult(token=issue_token(user), user=user.to_public())


async def get_profile(user_id: str) -> Profile:
    """Return the user's public fields plus counts of their posts."""
    user = await get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")

    posts = await get_gateway().find(POSTS, {"authorId": user_id})
    published = [p for p in posts if p.get("status") == PostStatus.PUBLISHED]
    stats = ProfileStats(
        total_posts=len(posts),
        published_posts=len(published),
        draft_posts=len(posts) - len(published),
        total_views=sum(p.get("views") or 0 for p in published),
    )
    return Profile(**user.to_public().model_dump(), stats=stats)
