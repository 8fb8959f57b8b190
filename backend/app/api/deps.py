"""FastAPI dependency injection — settings, session guards."""
import time
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from app.config import SESSION_COOKIE_NAME, Settings
from app.db import JsonStore, get_store
from app.models.hr_models import Session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def now_ms() -> int:
    return int(time.time() * 1000)


def decode_session_token(token: str, settings: Settings) -> Optional[dict]:
    """Verify the signed ``sid`` cookie; None when it is missing, forged or expired."""
    try:
        payload = jwt.decode(
            token, settings.session_secret_key, algorithms=[settings.session_algorithm]
        )
    except JWTError:
        return None
    if not payload.get("sid") or not payload.get("sub"):
        return None
    return payload


async def get_optional_session(
    request: Request,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> Optional[Session]:
    """Returns the live session if the cookie is valid, None otherwise (public pages)."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    payload = decode_session_token(token, settings)
    if payload is None:
        return None
    session = next((s for s in store.sessions if s.sid == payload["sid"]), None)
    if session is None or session.is_expired(now_ms()):
        return None
    return session


async def require_session(
    session: Optional[Session] = Depends(get_optional_session),
) -> Session:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session
