"""
WeCom login routes — H5 OAuth redirect/callback, mini-program login,
dev fallback login, logout.

A successful login stores a ``Session`` in the JSON store and sets an
HttpOnly ``sid`` cookie holding a signed token (python-jose, HS256) that
references it. Logging out deletes the stored session, so a copied cookie
stops working even before it expires.

Rate limiting for these endpoints is enforced at the middleware level
(RateLimitMiddleware): 10 requests per minute per IP.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from jose import jwt
from pydantic import BaseModel

from app.api.deps import decode_session_token, get_settings, now_ms
from app.config import SESSION_COOKIE_NAME, Settings
from app.db import JsonStore, get_store
from app.models.hr_models import Session, User, new_id
from app.services.wecom_client import WeComClient, WeComError

router = APIRouter(tags=["Authentication"])
logger = logging.getLogger("hcm-auth")

DEV_USER_NAME = "Developer"


class MiniProgramLoginRequest(BaseModel):
    js_code: str = ""


def get_wecom_client(settings: Settings = Depends(get_settings)) -> WeComClient:
    return WeComClient(
        corp_id=settings.wecom_corp_id,
        corp_secret=settings.wecom_corp_secret,
        agent_id=settings.wecom_agent_id,
    )


def create_session_token(data: dict, settings: Settings) -> str:
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(hours=settings.session_ttl_hours)
    return jwt.encode(to_encode, settings.session_secret_key, algorithm=settings.session_algorithm)


async def open_session(
    response: Response,
    store: JsonStore,
    settings: Settings,
    user_id: str,
    name: Optional[str] = None,
) -> Session:
    """Persist a new session for ``user_id``, upsert the user, set the cookie."""
    created = now_ms()
    ttl_ms = settings.session_ttl_hours * 60 * 60 * 1000
    session = Session(
        sid=secrets.token_hex(16),
        user_id=user_id,
        name=name,
        created_at=created,
        expires_at=created + ttl_ms,
    )
    async with store.transaction():
        store.sessions.append(session)
        existing = next((u for u in store.users if u.user_id == user_id), None)
        if existing is None:
            store.users.append(User(id=new_id(), user_id=user_id, name=name))
        elif name:
            existing.name = name
    await store.save("sessions")
    await store.save("users")

    token = create_session_token({"sub": user_id, "sid": session.sid}, settings)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=settings.session_ttl_hours * 60 * 60,
        path="/",
        httponly=True,
    )
    logger.info(f"Session opened for {user_id}", extra={"user_id": user_id})
    return session


def _dev_user_id() -> str:
    return f"DEV-{now_ms()}"


# ─── H5 OAuth ────────────────────────────────────────────────────────────────

@router.get("/auth/wecom/login")
async def wecom_login(
    settings: Settings = Depends(get_settings),
    client: WeComClient = Depends(get_wecom_client),
):
    redirect_uri = f"{settings.base_url}/auth/wecom/callback"
    return RedirectResponse(client.authorize_url(redirect_uri), status_code=302)


@router.get("/auth/wecom/callback")
async def wecom_callback(
    code: Optional[str] = None,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    client: WeComClient = Depends(get_wecom_client),
):
    """
    Exchange the OAuth ``code`` for the employee's UserId and log them in.

    With WECOM_DEV_ALLOW_FALLBACK=1 any WeCom failure logs in a throwaway
    developer account instead of failing.
    """
    response = RedirectResponse("/", status_code=302)
    try:
        if not code:
            raise WeComError("missing code")
        info = await client.user_by_code(code)
        await open_session(response, store, settings, info["user_id"], info.get("name"))
        return response
    except WeComError as e:
        logger.warning(f"WeCom login failed: {e}")
        if settings.wecom_dev_allow_fallback:
            await open_session(response, store, settings, _dev_user_id(), DEV_USER_NAME)
            return response
        raise HTTPException(
            status_code=500,
            detail="WeCom login failed; check the WECOM_* settings and the WeCom app configuration",
        )


@router.get("/auth/dev")
async def dev_login(
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Developer login, only when WECOM_DEV_ALLOW_FALLBACK is enabled."""
    if not settings.wecom_dev_allow_fallback:
        raise HTTPException(status_code=403, detail="forbidden")
    response = RedirectResponse("/", status_code=302)
    await open_session(response, store, settings, _dev_user_id(), DEV_USER_NAME)
    return response


@router.get("/logout")
async def logout(
    request: Request,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    token = request.cookies.get(SESSION_COOKIE_NAME)
    payload = decode_session_token(token, settings) if token else None
    if payload is not None:
        async with store.transaction():
            store.sessions = [s for s in store.sessions if s.sid != payload["sid"]]
        await store.save("sessions")
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return response


# ─── Mini-program backend ────────────────────────────────────────────────────

@router.post("/auth/wecom/mp/login")
async def mini_program_login(
    req: MiniProgramLoginRequest,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    client: WeComClient = Depends(get_wecom_client),
):
    """The mini-program posts its ``js_code`` here and receives the ``sid`` cookie."""
    response = JSONResponse({"ok": True})
    try:
        data = await client.mini_program_code2session(req.js_code)
        user_id = data.get("userid") or data.get("userId") or data.get("openid") or "UNKNOWN"
        await open_session(response, store, settings, str(user_id))
        return response
    except WeComError as e:
        logger.warning(f"WeCom mini-program login failed: {e}")
        if settings.wecom_dev_allow_fallback:
            response = JSONResponse({"ok": True, "dev": True})
            await open_session(response, store, settings, _dev_user_id(), DEV_USER_NAME)
            return response
        raise HTTPException(status_code=500, detail="wecom mp login failed")
