from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coach_portal.api.deps import get_backend_client, get_current_user
from coach_portal.models.user import User
from coach_portal.services.api_client import BackendClient
from coach_portal.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/login")
async def login(request: LoginRequest, client: BackendClient = Depends(get_backend_client)):
    token, user = await AuthService(client).login(request.email, request.password)
    return {"success": True, "token": token, "user": user.model_dump()}


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
    return user.model_dump()


@router.post("/logout")
async def logout(client: BackendClient = Depends(get_backend_client)):
    await AuthService(client).logout()
    return {"success": True}
