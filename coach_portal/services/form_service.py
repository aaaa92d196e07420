"""Client profile resources: personal details, employment, income, expenses,
assets, liabilities and family members.

Every resource follows the same create / get / get-by-user / update /
delete pattern on the backend; only the paths differ.
"""

from typing import Any, Optional

from coach_portal.services.api_client import BackendClient, require_data

RESOURCE_PATHS = {
    "personal_details": "/personal-details",
    "employment": "/employment",
    "income": "/income",
    "expenses": "/expenses",
    "assets": "/assets",
    "liabilities": "/liabilities",
    "family_members": "/family-members",
}


class FormService:
    def __init__(self, client: BackendClient):
        self.client = client

    @staticmethod
    def _path(resource: str) -> str:
        try:
            return RESOURCE_PATHS[resource]
        except KeyError:
            raise ValueError(f"Unknown profile resource: {resource}")

    async def create(self, resource: str, data: dict) -> dict:
        response = await self.client.post(self._path(resource), json=data)
        return require_data(response, f"create {resource}")

    async def get(self, resource: str, record_id: str) -> dict:
        response = await self.client.get(f"{self._path(resource)}/{record_id}")
        return require_data(response, f"get {resource}")

    async def get_by_user(self, resource: str, user_id: str) -> Any:
        # Family members are the only resource with an explicit /user/ segment
        if resource == "family_members":
            response = await self.client.get(f"{self._path(resource)}/user/{user_id}")
        else:
            response = await self.client.get(f"{self._path(resource)}/{user_id}")
        return require_data(response, f"get {resource} for user")

    async def list_all(self, resource: str, params: Optional[dict] = None) -> Any:
        response = await self.client.get(self._path(resource), params=params)
        return require_data(response, f"list {resource}")

    async def update(self, resource: str, record_id: str, data: dict) -> dict:
        response = await self.client.put(f"{self._path(resource)}/{record_id}", json=data)
        return require_data(response, f"update {resource}")

    async def delete(self, resource: str, record_id: str) -> None:
        response = await self.client.delete(f"{self._path(resource)}/{record_id}")
        require_data(response, f"delete {resource}", allow_empty=True)

    # Personal details has a few extra lookups

    async def get_my_personal_details(self) -> dict:
        response = await self.client.get("/personal-details/my")
        return require_data(response, "get personal details")

    async def get_personal_details_by_coach(self, coach_id: str) -> list:
        response = await self.client.get(f"/personal-details/coach/{coach_id}")
        return require_data(response, "get personal details for coach")

    async def get_family_members_by_relation(self, user_id: str, relation: str) -> list:
        response = await self.client.get(f"/family-members/user/{user_id}/relation/{relation}")
        return require_data(response, "get family members")

    async def delete_user_family_members(self, user_id: str) -> None:
        response = await self.client.delete(f"/family-members/user/{user_id}")
        require_data(response, "delete family members", allow_empty=True)
