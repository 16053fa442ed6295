# freelanceflow/api/routes/projects.py
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from freelanceflow.api.models import (
    ProjectCreate,
    ProjectOut,
    ProjectStatusChange,
    ProjectUpdate,
    dump,
)
from freelanceflow.api.security import require_caller
from freelanceflow.db.connect import SessionFactory, get_session_dep, get_session_factory_dep
from freelanceflow.db.models import Member
from freelanceflow.matching import service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
@router.get("/")
def list_projects(request: Request, db: Session = Depends(get_session_dep)):
    params: dict[str, list[str]] = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, []).append(value)
    rows, pagination = service.list_projects(db, params)
    return {
        "projects": [dump(ProjectOut, project) for project in rows],
        "pagination": pagination,
    }


@router.get("/categories")
def project_categories(db: Session = Depends(get_session_dep)):
    return service.category_stats(db)


@router.get("/{project_id}")
def get_project(
    project_id: str,
    background: BackgroundTasks,
    db: Session = Depends(get_session_dep),
    session_factory: SessionFactory = Depends(get_session_factory_dep),
):
    project = service.get_project(db, project_id)
    body = {"project": dump(ProjectOut, project)}
    background.add_task(service.record_view, session_factory, project.id)
    return body


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def create_project(
    payload: ProjectCreate,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    project = service.create_project(db, caller, payload.model_dump())
    return {"project": dump(ProjectOut, project)}


@router.put("/{project_id}")
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    project = service.update_project(db, project_id, caller, payload.model_dump(exclude_unset=True))
    return {"project": dump(ProjectOut, project)}


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    service.delete_project(db, project_id, caller)
    return {"deleted": int(project_id)}


@router.patch("/{project_id}/status")
def set_project_status(
    project_id: str,
    payload: ProjectStatusChange,
    caller: Member = Depends(require_caller),
    db: Session = Depends(get_session_dep),
):
    project = service.set_project_status(db, project_id, caller, payload.status)
    return {"project": dump(ProjectOut, project)}
