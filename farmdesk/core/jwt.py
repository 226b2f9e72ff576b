from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from farmdesk.core.config import settings

TOKEN_TYPE = "access"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        **data,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": TOKEN_TYPE,
    }

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def token_for_user(user) -> str:
    # Role travels in the token for clients; authorization always re-reads the user row
    return create_access_token(
        {"sub": str(user.id), "username": user.username, "role": user.role}
    )


def decode_access_token(token: str) -> dict | None:
    """Claims of a valid, unexpired access token, or None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != TOKEN_TYPE:
        return None

    return claims
