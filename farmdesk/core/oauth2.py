from fastapi import Request
from fastapi.security import OAuth2PasswordBearer

from farmdesk.core.config import settings

# Bearer header for API clients; auto_error is off so the cookie can be tried next
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def token_from_cookie(request: Request) -> str | None:
    return request.cookies.get(settings.AUTH_COOKIE_NAME)
