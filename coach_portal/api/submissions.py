"""Stored submissions: PDF export and required-document uploads."""

import logging
from datetime import datetime, timezone
from typing import Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from coach_portal.api.deps import get_current_user, get_language, get_workflow
from coach_portal.i18n.translations import create_translation_function
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User, UserRole
from coach_portal.services.document_storage import (
    DocumentStorage,
    applicant_folder,
    build_document_key,
    client_id_from_submission,
    get_document_storage_ids,
    validate_upload,
)
from coach_portal.services.form_workflow import FormWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions")


async def _load_visible_submission(submission_id: str, workflow: FormWorkflow, user: User) -> FormSubmission:
    submission = await workflow.submissions.get(submission_id)
    if user.role not in (UserRole.COACH, UserRole.ADMIN) and submission.user_id != user.id:
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    return submission


@router.get("/{submission_id}/export")
async def export_submission(submission_id: str,
                            workflow: FormWorkflow = Depends(get_workflow),
                            user: User = Depends(get_current_user),
                            language: str = Depends(get_language)):
    submission = await _load_visible_submission(submission_id, workflow, user)
    client = user if submission.user_id == user.id else None
    filename, content = await workflow.export_submission(submission, user, client=client, language=language)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{submission_id}/documents")
async def list_documents(submission_id: str,
                         workflow: FormWorkflow = Depends(get_workflow),
                         user: User = Depends(get_current_user)):
    await _load_visible_submission(submission_id, workflow, user)
    documents = await workflow.submissions.list_documents(submission_id)
    return {"success": True, "data": documents}


@router.post("/{submission_id}/documents/{document_id}")
async def upload_document(submission_id: str, document_id: str,
                          file: UploadFile = File(...),
                          applicant: Optional[str] = Form(default=None),
                          workflow: FormWorkflow = Depends(get_workflow),
                          user: User = Depends(get_current_user),
                          language: str = Depends(get_language)):
    t = create_translation_function(language)
    submission = await _load_visible_submission(submission_id, workflow, user)
    config = await workflow.submissions.get_configuration(submission.form_config_id)

    requirement = next((d for d in config.documents if d.id == document_id), None)
    if requirement is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} is not required by this form")

    content = await file.read()
    file_name = file.filename or requirement.name
    validate_upload(requirement, file_name, file.content_type, len(content), t)

    coach_id, client_id = get_document_storage_ids(user, client_id_from_submission(submission, user))
    applicant_type = applicant_folder(config.is_dual, applicant)
    key = build_document_key(coach_id, client_id, config.reference_id, applicant_type, document_id, file_name)

    try:
        key, size = DocumentStorage.get_instance().upload_document(key, content, file.content_type)
    except ClientError:
        workflow.broadcaster.error(user.id, t("common.error"), t("forms.documents.uploadError"))
        raise HTTPException(status_code=502, detail=t("forms.documents.uploadError"))

    record = await workflow.submissions.create_document_record(submission_id, {
        "client_id": client_id,
        "form_config_id": config.reference_id,
        "file_name": file_name,
        "applicant_type": applicant_type,
        "document_id": document_id,
        "storage_path": key,
        "file_size_bytes": size,
        "content_type": file.content_type,
        "form_submission_id": submission_id,
        "upload_status": "uploaded",
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
    })
    workflow.broadcaster.success(user.id, t("common.success"), t("forms.documents.uploadSuccess", {"name": requirement.name}))
    logger.info(f"Stored document {document_id} for submission {submission_id} at {key}")
    return {"success": True, "path": key, "size": size, "record": record}
