"""Request-scoped dependencies: backend client, current user, role guard, language."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coach_portal.i18n.translations import normalize_language
from coach_portal.models.user import User, UserRole
from coach_portal.services.api_client import BackendClient
from coach_portal.services.auth_service import AuthService
from coach_portal.services.form_workflow import FormWorkflow

bearer_scheme = HTTPBearer(auto_error=False)


def get_backend_client(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> BackendClient:
    return BackendClient(token=credentials.credentials if credentials else None)


async def get_current_user(client: BackendClient = Depends(get_backend_client)) -> User:
    if not client.token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return await AuthService(client).profile()


def require_roles(*roles: UserRole):
    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user
    return dependency


def get_language(
    lang: Optional[str] = Query(default=None),
    accept_language: Optional[str] = Header(default=None),
) -> str:
    return normalize_language(lang or accept_language)


def get_workflow(client: BackendClient = Depends(get_backend_client)) -> FormWorkflow:
    return FormWorkflow(client)
