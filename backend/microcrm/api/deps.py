from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from microcrm.core.config import settings
from microcrm.db.session import get_session, get_storage
from microcrm.models.client import Client
from microcrm.models.user import User
from microcrm.services.portal import PORTAL_ROLE, portal_fingerprint
from microcrm.storage.base import SQLStorage
from microcrm.utils.security import decode_token, token_blacklist

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False)

Storage = Annotated[SQLStorage, Depends(get_storage)]


def get_token(request: Request, bearer: Annotated[str | None, Depends(oauth2_scheme)]) -> str:
    token = bearer or request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return token


def get_token_payload(token: Annotated[str, Depends(get_token)]) -> dict[str, Any]:
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    jti = payload.get("jti")
    if not jti:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if token_blacklist.is_revoked(str(jti)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has been revoked")
    return payload


def _subject(payload: dict[str, Any]) -> UUID:
    try:
        return UUID(str(payload.get("sub")))
    except (ValueError, TypeError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from exc


def get_current_user(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
    session: Annotated[Session, Depends(get_session)],
) -> User:
    if payload.get("role") == PORTAL_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    user_id = _subject(payload)
    user = session.exec(select(User).where(User.id == user_id)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User inactive")
    return user


def get_portal_client(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
    storage: Storage,
) -> Client:
    if payload.get("role") != PORTAL_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    client_id = _subject(payload)
    try:
        tenant_id = UUID(str(payload.get("tenant_id")))
    except (ValueError, TypeError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    client = storage.get_client(tenant_id, client_id)
    # a revoked or regenerated access key invalidates portal sessions issued for the old one
    if not client or not client.portal_token or payload.get("portal") != portal_fingerprint(client.portal_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Portal access revoked")
    return client


class PageParams:
    def __init__(
        self,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=settings.default_page_size, ge=1),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.max_page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


CurrentUser = Annotated[User, Depends(get_current_user)]
PortalClient = Annotated[Client, Depends(get_portal_client)]
Paging = Annotated[PageParams, Depends(PageParams)]
