from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from gradeflow.core.config import MAX_UPLOAD_BYTES, MIB
from gradeflow.core.current_user import CurrentUser, get_current_user
from gradeflow.core.deps import get_submission_service
from gradeflow.core.errors import ArtifactRejected, GradeflowError
from gradeflow.core.http_errors import to_http_exception
from gradeflow.core.permissions import require_student, require_teacher
from gradeflow.schemas.submission import SubmissionGradeUpdate, SubmissionRead
from gradeflow.services.normalizer import Artifact
from gradeflow.services.submissions import SubmissionOutcome, SubmissionService

router = APIRouter()


def _too_large() -> ArtifactRejected:
    return ArtifactRejected(f"File is too large. Maximum size is {MAX_UPLOAD_BYTES // MIB}MB.", too_large=True)


async def _read_upload(file: UploadFile) -> Artifact:
    # never buffer more than one byte past the ceiling
    if file.size is not None and file.size > MAX_UPLOAD_BYTES:
        raise to_http_exception(_too_large())
    data = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise to_http_exception(_too_large())
    return Artifact.from_bytes(
        name=file.filename or "upload",
        media_type=file.content_type or "application/octet-stream",
        data=data,
    )


def _with_notice(outcome: SubmissionOutcome):
    sub = outcome.submission
    # attach computed field for response
    sub.notice = outcome.notice
    return sub


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmissionRead,
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    assignment_id: int,
    file: UploadFile = File(...),
    service: SubmissionService = Depends(get_submission_service),
    me: CurrentUser = Depends(require_student),
):
    artifact = await _read_upload(file)
    try:
        outcome = await service.submit(assignment_id, me.id, artifact)
    except GradeflowError as e:
        raise to_http_exception(e)
    return _with_notice(outcome)


@router.put("/submissions/{submission_id}", response_model=SubmissionRead)
async def resubmit_assignment(
    submission_id: int,
    file: UploadFile = File(...),
    confirm: bool = Query(False, description="Required when the submission already has a grade"),
    service: SubmissionService = Depends(get_submission_service),
    me: CurrentUser = Depends(require_student),
):
    artifact = await _read_upload(file)
    try:
        outcome = await service.resubmit(submission_id, me.id, artifact, confirm=confirm)
    except GradeflowError as e:
        raise to_http_exception(e)
    return _with_notice(outcome)


@router.delete("/submissions/{submission_id}")
async def remove_submission(
    submission_id: int,
    service: SubmissionService = Depends(get_submission_service),
    me: CurrentUser = Depends(require_student),
):
    try:
        await service.remove(submission_id, me.id)
    except GradeflowError as e:
        raise to_http_exception(e)
    return {"message": "Submission removed successfully"}


@router.get("/submissions/me", response_model=list[SubmissionRead])
def my_submissions(
    service: SubmissionService = Depends(get_submission_service),
    me: CurrentUser = Depends(require_student),
):
    return service.list_for_student(me.id)


@router.get("/submissions/{submission_id}", response_model=SubmissionRead)
def get_submission(
    submission_id: int,
    service: SubmissionService = Depends(get_submission_service),
    me: CurrentUser = Depends(get_current_user),
):
    try:
        sub = service.get(submission_id)
    except GradeflowError as e:
        raise to_http_exception(e)

    if me.role == "student" and sub.student_id != me.id:
        raise HTTPException(status_code=403, detail="Access denied")
    if me.role == "teacher" and sub.assignment.teacher_id != me.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return sub


@router.get(
    "/assignments/{assignment_id}/submissions",
    response_model=list[SubmissionRead],
)
def list_submissions_for_assignment(
    assignment_id: int,
    service: SubmissionService = Depends(get_submission_service),
    teacher: CurrentUser = Depends(require_teacher),
):
    try:
        return service.list_for_assignment(assignment_id, teacher.id)
    except GradeflowError as e:
        raise to_http_exception(e)


@router.patch(
    "/submissions/{submission_id}/grade",
    response_model=SubmissionRead,
)
def grade_submission(
    submission_id: int,
    payload: SubmissionGradeUpdate,
    service: SubmissionService = Depends(get_submission_service),
    teacher: CurrentUser = Depends(require_teacher),
):
    try:
        return service.grade_manually(submission_id, teacher.id, payload.grade, payload.feedback)
    except GradeflowError as e:
        raise to_http_exception(e)
