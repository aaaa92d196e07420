from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from coach_portal.api.deps import get_backend_client, require_roles
from coach_portal.models.user import User, UserRole
from coach_portal.services.api_client import BackendClient
from coach_portal.services.config_tool_service import (
    ConfigToolService,
    generate_config_id,
    validate_form_configuration,
)

router = APIRouter(prefix="/admin/form-configurations")

admin_only = require_roles(UserRole.ADMIN)


class CloneRequest(BaseModel):
    name: str


def _service(client: BackendClient = Depends(get_backend_client)) -> ConfigToolService:
    return ConfigToolService(client)


def _invalid(errors: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Invalid form configuration", "errors": errors},
    )


@router.get("")
async def list_configurations(form_type: Optional[str] = Query(default=None, alias="formType"),
                              is_active: Optional[bool] = Query(default=None, alias="isActive"),
                              search: Optional[str] = None,
                              created_by_id: Optional[str] = Query(default=None, alias="createdById"),
                              service: ConfigToolService = Depends(_service),
                              user: User = Depends(admin_only)):
    return await service.list_configurations(form_type, is_active, search, created_by_id)


@router.get("/statistics")
async def statistics(service: ConfigToolService = Depends(_service), user: User = Depends(admin_only)):
    return await service.statistics()


@router.get("/{record_id}")
async def get_configuration(record_id: str, service: ConfigToolService = Depends(_service),
                            user: User = Depends(admin_only)):
    return await service.get(record_id)


@router.post("")
async def create_configuration(data: dict[str, Any], service: ConfigToolService = Depends(_service),
                               user: User = Depends(admin_only)):
    is_valid, errors = validate_form_configuration(data)
    if not is_valid:
        return _invalid(errors)
    if not data.get("config_id"):
        data = {**data, "config_id": generate_config_id()}
    return await service.create(data)


@router.put("/{record_id}")
async def update_configuration(record_id: str, data: dict[str, Any],
                               service: ConfigToolService = Depends(_service),
                               user: User = Depends(admin_only)):
    is_valid, errors = validate_form_configuration(data)
    if not is_valid:
        return _invalid(errors)
    return await service.update(record_id, data)


@router.delete("/{record_id}")
async def delete_configuration(record_id: str, service: ConfigToolService = Depends(_service),
                               user: User = Depends(admin_only)):
    await service.delete(record_id)
    return {"success": True}


@router.post("/{record_id}/clone")
async def clone_configuration(record_id: str, request: CloneRequest,
                              service: ConfigToolService = Depends(_service),
                              user: User = Depends(admin_only)):
    return await service.clone(record_id, request.name)


@router.patch("/{record_id}/status")
async def toggle_status(record_id: str, service: ConfigToolService = Depends(_service),
                        user: User = Depends(admin_only)):
    return await service.toggle_status(record_id)
