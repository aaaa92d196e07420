import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coach_portal.api import admin, auth, forms, submissions
from coach_portal.config import settings
from coach_portal.errors import (
    AuthenticationError,
    BackendError,
    ConfigurationNotFoundError,
    DocumentValidationError,
    InvalidTransitionError,
    PDFExportError,
    SubmissionError,
)
from coach_portal.services.session_registry import FormSessionRegistry

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry = FormSessionRegistry.get_instance()
    registry.start_background_cleanup(settings.session_timeout_seconds)
    yield
    registry.stop_background_cleanup()


app = FastAPI(
    title="Coach Portal Service",
    description="Form engine and submission workflow in front of the coaching backend",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, tags=["auth"])
app.include_router(forms.router, tags=["forms"])
app.include_router(submissions.router, tags=["submissions"])
app.include_router(admin.router, tags=["admin"])


def _error(status_code: int, message: str, redirect: str = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if redirect:
        content["redirect"] = redirect
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(ConfigurationNotFoundError)
async def config_not_found_handler(request: Request, exc: ConfigurationNotFoundError):
    return _error(404, exc.message, redirect=settings.forms_list_path)


@app.exception_handler(AuthenticationError)
async def authentication_handler(request: Request, exc: AuthenticationError):
    return _error(401, exc.message)


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return _error(409, exc.message)


@app.exception_handler(DocumentValidationError)
async def document_validation_handler(request: Request, exc: DocumentValidationError):
    return _error(400, exc.message)


@app.exception_handler(SubmissionError)
async def submission_handler(request: Request, exc: SubmissionError):
    return _error(502, exc.message)


@app.exception_handler(BackendError)
async def backend_handler(request: Request, exc: BackendError):
    return _error(502, exc.message)


@app.exception_handler(PDFExportError)
async def pdf_export_handler(request: Request, exc: PDFExportError):
    return _error(500, exc.message)


@app.get("/health")
async def health_check():
    from coach_portal.services.api_client import BackendClient
    backend = BackendClient()
    backend_ok = await backend.is_available()

    return {
        "status": "ok",
        "backend": "connected" if backend_ok else "unavailable"
    }
