from __future__ import annotations

# src/freelanceflow/api/main.py
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from freelanceflow.api.routes import projects_router, proposals_router
from freelanceflow.api.security import require_api_key
from freelanceflow.config import settings
from freelanceflow.logging import get_logger
from freelanceflow.matching.errors import MatchingError, ServerFault

logger = get_logger(__file__)

_DEFAULT_CORS_ORIGINS = [
    "http://127.0.0.1:3000",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://localhost:5173",
]

app = FastAPI(title="FreelanceFlow")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins() or _DEFAULT_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def _field_path(loc) -> str | None:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or None


@app.exception_handler(MatchingError)
async def matching_error_handler(request: Request, exc: MatchingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_path(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "VALIDATION_FAILED", "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    fault = ServerFault()
    return JSONResponse(status_code=fault.status_code, content=fault.to_dict())


@app.get("/status")
def status():
    return {"ok": True}


app.include_router(projects_router, dependencies=[Depends(require_api_key)])
app.include_router(proposals_router, dependencies=[Depends(require_api_key)])
