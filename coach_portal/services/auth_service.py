import logging

from coach_portal.errors import AuthenticationError, BackendError
from coach_portal.models.user import User
from coach_portal.services.api_client import BackendClient, require_data

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def login(self, email: str, password: str) -> tuple[str, User]:
        """Exchange credentials for a bearer token. The client keeps the token."""
        response = await self.client.post("/auth/login", json={"email": email, "password": password})
        if not response.success or not response.data:
            raise AuthenticationError(response.message or "Login failed", status_code=401)
        token = response.data.get("token")
        if not token:
            raise AuthenticationError("Login failed: no token returned", status_code=401)
        self.client.token = token
        user = response.data.get("user")
        if not user:
            return token, await self.profile()
        return token, User.model_validate(user)

    async def profile(self) -> User:
        response = await self.client.get("/auth/profile")
        try:
            data = require_data(response, "fetch profile")
        except BackendError as e:
            raise AuthenticationError(e.message, status_code=401) from e
        return User.model_validate(data)

    async def logout(self) -> None:
        try:
            await self.client.post("/auth/logout")
        except BackendError as e:
            # Token is dropped either way
            logger.warning(f"Logout API call failed: {e.message}")
        finally:
            self.client.token = None
