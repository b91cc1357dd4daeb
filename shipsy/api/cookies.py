from typing import Optional

from fastapi import Request, Response

from shipsy.auth_local import TokenPair
from shipsy.core_settings import get_settings

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": get_settings().is_production,
        "samesite": "lax",
        "path": "/",
    }


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    settings = get_settings()
    options = _cookie_options()
    # Cookie lifetimes match the token lifetimes
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, max_age=settings.access_token_ttl_seconds, **options)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, max_age=settings.refresh_token_ttl_seconds, **options)


def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


def read_access_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(ACCESS_COOKIE)


def read_refresh_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(REFRESH_COOKIE)
