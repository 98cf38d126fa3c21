from typing import Any, Dict, Optional

import requests

from privilege_service.clients.interfaces import IIdentityAuthority
from privilege_service.services.exceptions import AuthorityUnavailableError
from privilege_service.utils import get_logger

log = get_logger(__name__)


class HttpIdentityAuthority(IIdentityAuthority):
    """
    사용자 서비스(신원 인증 기관)의 HTTP API 클라이언트입니다.

    요청마다 새로 연결하지 않고 하나의 requests.Session을 재사용합니다.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def validate_token(self, token: str) -> Dict[str, Any]:
        resp = self._request("POST", "/v1/tokens/validate", json={"token": token})
        try:
            claims = resp.json()
        except ValueError as e:
            raise AuthorityUnavailableError(f"Identity service returned an invalid body: {e}") from e
        if not isinstance(claims, dict):
            raise AuthorityUnavailableError("Identity service returned an unexpected body.")
        return claims

    def ping(self) -> bool:
        self._request("GET", "/v1/ping")
        return True

    def close(self):
        self.session.close()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
        except requests.RequestException as e:
            log.error("Identity service call %s %s failed: %s", method, url, e)
            raise AuthorityUnavailableError(str(e)) from e
        return resp
