from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gradeflow.core.current_user import CurrentUser, get_current_user
from gradeflow.core.deps import get_db, get_submission_service
from gradeflow.core.errors import GradeflowError
from gradeflow.core.http_errors import to_http_exception
from gradeflow.core.permissions import require_teacher
from gradeflow.models.assignment import Assignment
from gradeflow.schemas.assignment import AssignmentCreate, AssignmentRead, AssignmentStatusUpdate
from gradeflow.services.submissions import SubmissionService

router = APIRouter()


def _ensure_assignment_exists(db: Session, assignment_id: int) -> Assignment:
    a = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not a:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return a


def _ensure_can_view(assignment: Assignment, user: CurrentUser) -> None:
    if user.role == "teacher" and assignment.teacher_id == user.id:
        return
    # students only see published work
    if user.role == "student" and assignment.status == "published":
        return
    raise HTTPException(status_code=404, detail="Assignment not found")


@router.get("/assignments", response_model=list[AssignmentRead])
def list_assignments(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    q = db.query(Assignment)
    if current_user.role == "teacher":
        q = q.filter(Assignment.teacher_id == current_user.id)
    else:
        q = q.filter(Assignment.status == "published")

    return q.order_by(
        Assignment.due_date.is_(None),  # NULLs last (SQLite-safe)
        Assignment.due_date.asc(),
        Assignment.id.asc(),
    ).all()


@router.post(
    "/assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(
    payload: AssignmentCreate,
    db: Session = Depends(get_db),
    teacher: CurrentUser = Depends(require_teacher),
):
    a = Assignment(
        teacher_id=teacher.id,
        title=payload.title,
        instructions=payload.instructions,
        max_points=payload.max_points,
        due_date=payload.due_date,
        status=payload.status,
        total_submissions=0,
    )
    db.add(a)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(a)
    return a


@router.get("/assignments/{assignment_id}", response_model=AssignmentRead)
def get_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    a = _ensure_assignment_exists(db, assignment_id)
    _ensure_can_view(a, current_user)
    return a


@router.patch("/assignments/{assignment_id}/status", response_model=AssignmentRead)
def update_assignment_status(
    assignment_id: int,
    payload: AssignmentStatusUpdate,
    db: Session = Depends(get_db),
    teacher: CurrentUser = Depends(require_teacher),
):
    a = _ensure_assignment_exists(db, assignment_id)
    if a.teacher_id != teacher.id:
        raise HTTPException(status_code=403, detail="Only the assignment owner can change its status")

    a.status = payload.status
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(a)
    return a


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: int,
    service: SubmissionService = Depends(get_submission_service),
    teacher: CurrentUser = Depends(require_teacher),
):
    """Deletes the assignment together with every submission and stored artifact."""
    try:
        removed = await service.delete_assignment_cascade(assignment_id, teacher.id)
    except GradeflowError as e:
        raise to_http_exception(e)
    return {"message": "Assignment and all related submissions deleted", "deleted_submissions": removed}
