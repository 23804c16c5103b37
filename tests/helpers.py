"""Bearer tokens for route tests."""

from jose import jwt

from engagement_service.config import settings


def make_token(user_id: str, username: str = "someone") -> str:
    return jwt.encode(
        {"sub": user_id, "username": username},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id, user.username)}"}
