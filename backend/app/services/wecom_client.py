"""
WeCom (enterprise WeChat) API client.

Used by the OAuth callback (H5 page) and the mini-program login to turn a
one-time ``code`` into the employee's WeCom UserId. Only the corp secret
holder (this server) may call these endpoints.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger("hcm-wecom")

WECOM_API_BASE = "https://qyapi.weixin.qq.com/cgi-bin"
WECOM_AUTHORIZE_URL = "https://open.weixin.qq.com/connect/oauth2/authorize"


class WeComError(Exception):
    """Raised when WeCom is not configured or an API call fails."""


class WeComClient:
    def __init__(
        self,
        corp_id: str,
        corp_secret: str,
        agent_id: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.corp_id = corp_id
        self.corp_secret = corp_secret
        self.agent_id = agent_id
        self.timeout = timeout
        self._transport = transport

    def authorize_url(self, redirect_uri: str, state: str = "STATE") -> str:
        """Browser redirect target for the silent (``snsapi_base``) OAuth flow."""
        return (
            f"{WECOM_AUTHORIZE_URL}?appid={self.corp_id}"
            f"&redirect_uri={quote(redirect_uri, safe='')}"
            f"&response_type=code&scope=snsapi_base&state={state}#wechat_redirect"
        )

    async def _get_json(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                r = await client.get(f"{WECOM_API_BASE}/{path}", params=params)
            except httpx.HTTPError as e:
                raise WeComError(f"{path}: {e}") from e
        if r.status_code != 200:
            raise WeComError(f"{path}: HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise WeComError(f"{path}: response is not JSON") from e
        if not isinstance(data, dict):
            raise WeComError(f"{path}: unexpected response {type(data).__name__}")
        # WeCom reports API failures with HTTP 200 and a non-zero errcode
        if data.get("errcode", 0) != 0:
            raise WeComError(f"{path}: errcode={data.get('errcode')} {data.get('errmsg', '')}")
        return data

    async def access_token(self) -> str:
        if not self.corp_id or not self.corp_secret:
            raise WeComError("WECOM_CORP_ID / WECOM_CORP_SECRET are not set")
        data = await self._get_json(
            "gettoken", {"corpid": self.corp_id, "corpsecret": self.corp_secret}
        )
        token = data.get("access_token")
        if not token:
            raise WeComError("gettoken: no access_token in response")
        return token

    async def user_by_code(self, code: str) -> Dict[str, Optional[str]]:
        """Resolve an OAuth ``code`` to ``{"user_id": ..., "name": ...}``."""
        token = await self.access_token()
        info = await self._get_json("user/getuserinfo", {"access_token": token, "code": code})
        user_id = info.get("UserId") or info.get("userid")
        if not user_id:
            raise WeComError("user/getuserinfo: no UserId (non-member or expired code)")

        name = None
        try:
            profile = await self._get_json("user/get", {"access_token": token, "userid": user_id})
            name = profile.get("name")
        except WeComError as e:
            # The display name is optional; the UserId alone is enough to log in
            logger.warning(f"WeCom name lookup failed for {user_id}: {e}")
        return {"user_id": user_id, "name": name}

    async def mini_program_code2session(self, js_code: str) -> Dict[str, Any]:
        token = await self.access_token()
        return await self._get_json(
            "miniprogram/jscode2session",
            {"access_token": token, "js_code": js_code, "grant_type": "authorization_code"},
        )
