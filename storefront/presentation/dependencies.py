from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.config import settings
from storefront.database import get_session_factory
from storefront.domain.models import CurrentUser
from storefront.infrastructure.http_clients import HTTPIdentityClient
from storefront.infrastructure.unit_of_work import UnitOfWork

bearer_scheme = HTTPBearer(auto_error=False)


def get_unit_of_work(session_factory=Depends(get_session_factory)) -> UnitOfWork:
    return UnitOfWork(session_factory)


def get_identity_service():
    return HTTPIdentityClient(settings.IDENTITY_BASE_URL, settings.API_TOKEN)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity=Depends(get_identity_service)
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Требуется авторизация")
    user = await identity.get_current_user(credentials.credentials)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Недействительный токен")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Доступ только для администратора")
    return user
