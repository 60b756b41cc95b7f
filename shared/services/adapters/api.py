"""
API Data Source
Reaches user storage through a remote user-service HTTP API

Uses one shared httpx.AsyncClient; call start() at startup and stop() at shutdown.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from shared.schemas.user import UserRecord, UserRole

from ..exceptions import DataSourceError, UserNotFoundError
from .base import DataSource

logger = logging.getLogger(__name__)

USERS_ENDPOINT = "/api/v1/users"


def _user_path(*segments: str) -> str:
    """Users endpoint path with each segment percent-encoded"""
    return "/".join([USERS_ENDPOINT] + [quote(str(segment), safe="") for segment in segments])


# Fields the remote update endpoint accepts
REMOTE_UPDATE_FIELDS = (
    'email', 'first_name', 'last_name', 'profile_photo', 'phone', 'date_of_birth',
    'address', 'emergency_contact', 'department', 'role', 'status',
)


class ApiDataSource(DataSource):
    """
    User storage delegated to another deployment of this API.

    The remote side owns password hashing, so create_user forwards the plain
    password it receives. Requests carry a bearer token from get_auth_token.
    """

    CONNECT_TIMEOUT = 5.0
    READ_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        get_auth_token: Optional[Callable[[], Awaitable[Optional[str]]]] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.get_auth_token = get_auth_token
        self._client = client

    async def start(self):
        if self._client is not None:
            logger.warning("ApiDataSource already started")
            return

        timeout = httpx.Timeout(self.READ_TIMEOUT, connect=self.CONNECT_TIMEOUT)
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        logger.info(f"ApiDataSource started: base_url={self.base_url}")

    async def stop(self):
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("ApiDataSource stopped")

    async def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.get_auth_token:
            token = await self.get_auth_token()
            if token:
                headers['Authorization'] = f"Bearer {token}"
        return headers

    async def _make_request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Send a request and raise DataSourceError on transport failure"""
        if self._client is None:
            await self.start()

        try:
            return await self._client.request(method, endpoint, headers=await self._headers(), **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Request error calling user API: {e}")
            raise DataSourceError(f"Failed to connect to user API: {e}")

    @staticmethod
    def _payload(response: httpx.Response) -> Any:
        """Unwrap the {"success": ..., "data": ...} envelope"""
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling user API: {e.response.status_code} - {e.response.text}")
            raise DataSourceError(f"User API error: {e.response.status_code}")

        if response.status_code == 204 or not response.content:
            return None

        body = response.json()
        if isinstance(body, dict) and 'data' in body:
            return body['data']
        return body

    async def create_user(self, data: Dict[str, Any]) -> UserRecord:
        payload = {key: getattr(value, 'value', value) for key, value in data.items() if value is not None}
        payload.pop('password_hash', None)

        response = await self._make_request("POST", USERS_ENDPOINT, json=payload)
        return UserRecord(**self._payload(response))

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        response = await self._make_request("GET", _user_path(user_id))
        if response.status_code == 404:
            return None
        return UserRecord(**self._payload(response))

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> UserRecord:
        payload = {
            key: getattr(value, 'value', value)
            for key, value in data.items()
            if key in REMOTE_UPDATE_FIELDS
        }
        skipped = sorted(set(data) - set(payload))
        if skipped:
            logger.warning(f"User API cannot update fields: {', '.join(skipped)}")

        response = await self._make_request("PUT", _user_path(user_id), json=payload)
        if response.status_code == 404:
            raise UserNotFoundError()
        return UserRecord(**self._payload(response))

    async def delete_user(self, user_id: str) -> None:
        response = await self._make_request("DELETE", _user_path(user_id))
        if response.status_code == 404:
            raise UserNotFoundError()
        self._payload(response)

    async def get_users_by_role(self, role: UserRole) -> List[UserRecord]:
        response = await self._make_request("GET", USERS_ENDPOINT, params={'role': role.value})
        return [UserRecord(**item) for item in self._payload(response) or []]

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        response = await self._make_request("GET", _user_path("by-email", email))
        if response.status_code == 404:
            return None
        return UserRecord(**self._payload(response))
