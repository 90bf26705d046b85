import httpx
import logging
from typing import Optional

from storefront.domain.models import CurrentUser
from storefront.domain.exceptions import IdentityServiceError
from storefront.application.interfaces import IdentityService

logger = logging.getLogger(__name__)


class HTTPIdentityClient(IdentityService):
    def __init__(self, base_url: str, api_token: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout
        self._transport = transport

    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    f"{self._base_url}/api/auth/me",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "X-API-Key": self._api_token
                    },
                    timeout=self._timeout
                )

                if response.status_code == 200:
                    try:
                        data = response.json()
                    except ValueError:
                        raise IdentityServiceError("Identity service вернул не JSON")
                    # identity отвечает конвертом {success, data}
                    payload = data.get("data", data) if isinstance(data, dict) else None
                    if not isinstance(payload, dict):
                        raise IdentityServiceError("Identity service вернул неожиданный ответ")
                    user_id = payload.get("id") or payload.get("_id")
                    if not user_id:
                        raise IdentityServiceError("Identity service вернул пользователя без id")
                    return CurrentUser(
                        id=str(user_id),
                        name=payload.get("name", ""),
                        email=payload.get("email", ""),
                        phone=payload.get("phone") or "",
                        role=payload.get("role", "user")
                    )
                elif response.status_code in (401, 403, 404):
                    return None
                else:
                    raise IdentityServiceError(f"Identity service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Identity service ошибка подключения: {e}")
            raise IdentityServiceError(f"Identity service не доступен: {str(e)}")
