"""Forms API: configuration list, own submissions and the form editing sessions."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from coach_portal.api.deps import get_current_user, get_language, get_workflow
from coach_portal.models.user import User
from coach_portal.services.form_workflow import (
    FormWorkflow,
    render_session,
    set_consent,
    set_field,
    set_signature,
)
from coach_portal.services.session_registry import FormSession, FormSessionRegistry

router = APIRouter(prefix="/forms")


class OpenSessionRequest(BaseModel):
    config_id: Optional[str] = None
    submission_id: Optional[str] = None
    language: Optional[str] = None


class FieldUpdateRequest(BaseModel):
    section_id: str
    field: str
    value: Any = None
    applicant: Optional[str] = None


class ConsentRequest(BaseModel):
    key: str
    accepted: bool


class SignatureRequest(BaseModel):
    signature: Optional[str] = None
    applicant: Optional[str] = None


def _get_session(session_id: str, user: User) -> FormSession:
    session = FormSessionRegistry.get_instance().get(session_id)
    if not session or session.user.id != user.id:
        raise HTTPException(status_code=404, detail=f"No open form session {session_id}")
    return session


@router.get("/configurations")
async def list_configurations(workflow: FormWorkflow = Depends(get_workflow),
                              user: User = Depends(get_current_user)):
    configs = await workflow.submissions.get_available_configurations()
    return [
        {
            "id": c.id,
            "config_id": c.config_id,
            "name": c.name,
            "description": c.description,
            "form_type": c.form_type,
            "version": c.version,
            "dual": c.is_dual,
            "documents": len(c.documents),
        }
        for c in configs
        if c.is_active
    ]


@router.get("/submissions")
async def list_submissions(workflow: FormWorkflow = Depends(get_workflow),
                           user: User = Depends(get_current_user)):
    submissions = await workflow.submissions.list_for_user(user.id)
    return [s.model_dump(exclude={"form_data"}) for s in submissions]


@router.post("/sessions")
async def open_session(request: OpenSessionRequest,
                       workflow: FormWorkflow = Depends(get_workflow),
                       user: User = Depends(get_current_user),
                       language: str = Depends(get_language)):
    if not request.config_id and not request.submission_id:
        raise HTTPException(status_code=422, detail="config_id or submission_id is required")
    session = await workflow.open(
        user,
        language=request.language or language,
        config_id=request.config_id,
        submission_id=request.submission_id,
    )
    return render_session(session)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, user: User = Depends(get_current_user)):
    return render_session(_get_session(session_id, user))


@router.patch("/sessions/{session_id}/fields")
async def update_field(session_id: str, request: FieldUpdateRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    try:
        value = set_field(session, request.section_id, request.field, request.value, request.applicant)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "field": request.field, "value": value}


@router.patch("/sessions/{session_id}/consents")
async def update_consent(session_id: str, request: ConsentRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    try:
        set_consent(session, request.key, request.accepted)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True, "key": request.key, "accepted": request.accepted}


@router.put("/sessions/{session_id}/signature")
async def update_signature(session_id: str, request: SignatureRequest, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    try:
        set_signature(session, request.signature, request.applicant)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True}


@router.post("/sessions/{session_id}/save")
async def save_draft(session_id: str, workflow: FormWorkflow = Depends(get_workflow),
                     user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    submission = await workflow.save_draft(session)
    return {"success": True, "submission_id": submission.id, "status": submission.status}


@router.post("/sessions/{session_id}/submit")
async def submit(session_id: str, workflow: FormWorkflow = Depends(get_workflow),
                 user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    redirect = await workflow.submit(session)
    return {
        "success": True,
        "submission_id": session.submission.id,
        "status": session.submission.status,
        "redirect": redirect,
    }


@router.get("/sessions/{session_id}/export")
async def export_session(session_id: str, workflow: FormWorkflow = Depends(get_workflow),
                         user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    filename, content = await workflow.export(session)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str, workflow: FormWorkflow = Depends(get_workflow),
                        user: User = Depends(get_current_user)):
    _get_session(session_id, user)
    await workflow.close(session_id)
    return {"success": True}
