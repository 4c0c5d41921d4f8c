"""
Submission lifecycle
====================

none -> submitted -> graded
submitted (grade is None) -> removed          student
any -> deleted                                 assignment cascade

Every mutating call is a sequential chain of awaited steps:
storage write -> normalize -> evaluate -> record write -> counter update.
Artifacts are written before the record that references them and deleted
before (remove, cascade) or after (resubmit) the record mutation. A missing
artifact never blocks a record change.

The assignment's ``total_submissions`` counter is adjusted with a single
atomic UPDATE after the record commit, not inside the same transaction, so
it can drift under concurrent create/remove races.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gradeflow.core.config import (
    ALLOWED_MEDIA_TYPES,
    EVALUATOR_SCALE,
    MAX_IMAGE_UPLOAD_BYTES,
    MAX_UPLOAD_BYTES,
    MIB,
)
from gradeflow.core.errors import (
    ArtifactMissing,
    ArtifactRejected,
    EvaluatorUnavailable,
    InvalidInput,
    NotFound,
    PermissionDenied,
    StateViolation,
    StorageError,
)
from gradeflow.models.assignment import Assignment
from gradeflow.models.submission import (
    GRADED_BY_EDUCATOR,
    GRADED_BY_EVALUATOR,
    STATUS_GRADED,
    STATUS_SUBMITTED,
    Submission,
)
from gradeflow.services.evaluation import EvaluationClient
from gradeflow.services.normalizer import Artifact, normalize
from gradeflow.storage.base import ArtifactStorage, submission_artifact_path

logger = logging.getLogger(__name__)


@dataclass
class SubmissionOutcome:
    submission: Submission
    created: bool
    # non-fatal message for the student (pending review, degraded evaluation)
    notice: str | None = None


def validate_artifact(artifact: Artifact) -> None:
    media_type = (artifact.media_type or "").lower()
    if media_type not in ALLOWED_MEDIA_TYPES and not media_type.startswith("text/"):
        raise ArtifactRejected(
            f"Invalid file type {artifact.media_type or 'unknown'!r}. Allowed formats: "
            "documents (PDF, DOC, DOCX, TXT, MD), images (JPG, JPEG, PNG, GIF, WEBP), archives (ZIP)."
        )
    if artifact.is_image and artifact.size_bytes > MAX_IMAGE_UPLOAD_BYTES:
        raise ArtifactRejected(
            f"Image file is too large. Maximum size for images is {MAX_IMAGE_UPLOAD_BYTES // MIB}MB. "
            f"Your file is {artifact.size_bytes / MIB:.1f}MB.",
            too_large=True,
        )
    if artifact.size_bytes > MAX_UPLOAD_BYTES:
        raise ArtifactRejected(
            f"File is too large. Maximum size is {MAX_UPLOAD_BYTES // MIB}MB.",
            too_large=True,
        )


def scale_grade(grade: int | None, max_points: float) -> float | None:
    """Evaluator grades are 0-100; persisted grades are on the assignment's scale."""
    if grade is None:
        return None
    return round(grade * max_points / EVALUATOR_SCALE, 2)


class SubmissionService:
    def __init__(self, db: Session, storage: ArtifactStorage, evaluator: EvaluationClient):
        self.db = db
        self.storage = storage
        self.evaluator = evaluator

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------

    def _get_assignment(self, assignment_id: int) -> Assignment:
        assignment = self.db.query(Assignment).filter(Assignment.id == assignment_id).first()
        if not assignment:
            raise NotFound("Assignment not found")
        return assignment

    def _get_submission(self, submission_id: int) -> Submission:
        sub = self.db.query(Submission).filter(Submission.id == submission_id).first()
        if not sub:
            raise NotFound("Submission not found")
        return sub

    def _get_own_submission(self, submission_id: int, student_id: str) -> Submission:
        sub = self._get_submission(submission_id)
        if sub.student_id != student_id:
            raise PermissionDenied("You can only change your own submissions")
        return sub

    def get(self, submission_id: int) -> Submission:
        return self._get_submission(submission_id)

    def list_for_student(self, student_id: str) -> list[Submission]:
        return (
            self.db.query(Submission)
            .filter(Submission.student_id == student_id)
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
            .all()
        )

    def list_for_assignment(self, assignment_id: int, teacher_id: str) -> list[Submission]:
        assignment = self._get_assignment(assignment_id)
        if assignment.teacher_id != teacher_id:
            raise PermissionDenied("Only the assignment owner can view its submissions")
        return (
            self.db.query(Submission)
            .filter(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # side-effect helpers
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _adjust_counter(self, assignment_id: int, delta: int) -> None:
        self.db.query(Assignment).filter(Assignment.id == assignment_id).update(
            {Assignment.total_submissions: Assignment.total_submissions + delta},
            synchronize_session=False,
        )
        self._commit()

    async def _store(self, assignment_id: int, student_id: str, artifact: Artifact) -> tuple[str, str]:
        path = submission_artifact_path(assignment_id, student_id, artifact.name)
        ref = await self.storage.upload(path, artifact.read_bytes(), artifact.media_type)
        try:
            url = await self.storage.url_for(ref)
        except StorageError:
            await self._discard(ref)
            raise
        return ref, url

    async def _discard(self, ref: str) -> None:
        """Delete an artifact, tolerating that it is already gone."""
        try:
            await self.storage.delete(ref)
        except ArtifactMissing:
            logger.info("Artifact %s already absent", ref)

    async def _evaluate(self, assignment: Assignment, artifact: Artifact) -> tuple[dict, str | None]:
        """
        Normalize and evaluate. Returns submission fields plus a notice.

        Evaluator failures are not raised: the submission is kept with
        status=submitted and grade=None, pending educator review.
        """
        content = normalize(artifact)
        fields = {
            "status": STATUS_SUBMITTED,
            "grade": None,
            "feedback": None,
            "suggestions": None,
            "graded_at": None,
            "graded_by": None,
            "degraded": content.degraded,
        }

        try:
            result = await self.evaluator.evaluate(
                content,
                assignment.title,
                assignment.instructions or "",
                assignment.max_points,
                artifact.media_type,
            )
        except EvaluatorUnavailable as e:
            logger.warning("Evaluation failed for assignment %s: %s", assignment.id, e)
            reason = str(e).rstrip(".")
            if artifact.is_image:
                notice = f"Image analysis failed: {reason}. Your image has been submitted and will be reviewed by your teacher."
            else:
                notice = f"Automatic evaluation by AI failed: {reason}. Your teacher will review it."
            return fields, notice

        feedback = result.feedback
        if content.degraded:
            feedback = f"{feedback}\n\nNote: {content.degraded_reason}"

        fields["feedback"] = feedback
        fields["suggestions"] = result.suggestions

        if result.grade is None:
            logger.warning("Evaluator returned no grade for assignment %s; leaving for review", assignment.id)
            return fields, "The AI evaluation did not include a grade. Your teacher will review it."

        fields.update(
            status=STATUS_GRADED,
            grade=scale_grade(result.grade, assignment.max_points),
            graded_at=datetime.now(timezone.utc),
            graded_by=GRADED_BY_EVALUATOR,
        )
        return fields, content.degraded_reason

    # ------------------------------------------------------------------
    # lifecycle operations
    # ------------------------------------------------------------------

    async def submit(self, assignment_id: int, student_id: str, artifact: Artifact) -> SubmissionOutcome:
        assignment = self._get_assignment(assignment_id)
        if assignment.status != "published":
            raise StateViolation("Assignment is not open for submissions")
        validate_artifact(artifact)

        existing = (
            self.db.query(Submission)
            .filter(Submission.assignment_id == assignment_id, Submission.student_id == student_id)
            .first()
        )
        if existing:
            raise StateViolation("Assignment already submitted")

        ref, url = await self._store(assignment_id, student_id, artifact)
        try:
            fields, notice = await self._evaluate(assignment, artifact)
        except Exception:
            await self._discard(ref)
            raise

        sub = Submission(
            assignment_id=assignment_id,
            student_id=student_id,
            artifact_ref=ref,
            artifact_url=url,
            artifact_name=artifact.name,
            artifact_media_type=artifact.media_type,
            artifact_size=artifact.size_bytes,
            submitted_at=datetime.now(timezone.utc),
            **fields,
        )
        self.db.add(sub)

        try:
            self.db.commit()
        except IntegrityError:
            # lost a double-submit race against the unique constraint
            self.db.rollback()
            await self._discard(ref)
            raise StateViolation("Assignment already submitted")
        except Exception:
            self.db.rollback()
            await self._discard(ref)
            raise

        self.db.refresh(sub)
        self._adjust_counter(assignment_id, 1)
        logger.info(
            "Student %s submitted assignment %s as submission %s (%s)",
            student_id,
            assignment_id,
            sub.id,
            sub.status,
        )
        return SubmissionOutcome(submission=sub, created=True, notice=notice)

    async def resubmit(
        self,
        submission_id: int,
        student_id: str,
        artifact: Artifact,
        confirm: bool = False,
    ) -> SubmissionOutcome:
        sub = self._get_own_submission(submission_id, student_id)
        if sub.grade is not None and not confirm:
            raise StateViolation(
                "This submission has already been graded. Resubmitting discards the grade "
                "and requests a new evaluation; confirm to continue."
            )
        validate_artifact(artifact)
        assignment = self._get_assignment(sub.assignment_id)

        old_ref = sub.artifact_ref
        ref, url = await self._store(sub.assignment_id, student_id, artifact)
        try:
            fields, notice = await self._evaluate(assignment, artifact)
        except Exception:
            if ref != old_ref:
                await self._discard(ref)
            raise

        sub.artifact_ref = ref
        sub.artifact_url = url
        sub.artifact_name = artifact.name
        sub.artifact_media_type = artifact.media_type
        sub.artifact_size = artifact.size_bytes
        sub.submitted_at = datetime.now(timezone.utc)
        for key, value in fields.items():
            setattr(sub, key, value)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            await self._discard(ref)
            raise

        self.db.refresh(sub)

        if old_ref and old_ref != ref:
            try:
                await self._discard(old_ref)
            except StorageError:
                logger.exception("Could not delete replaced artifact %s; it is now orphaned", old_ref)

        logger.info("Student %s resubmitted submission %s (%s)", student_id, sub.id, sub.status)
        return SubmissionOutcome(submission=sub, created=False, notice=notice)

    async def remove(self, submission_id: int, student_id: str) -> None:
        sub = self._get_own_submission(submission_id, student_id)
        if sub.grade is not None:
            raise StateViolation("Cannot remove a graded submission. Contact your teacher if changes are needed.")

        assignment_id = sub.assignment_id
        if sub.artifact_ref:
            await self._discard(sub.artifact_ref)

        self.db.delete(sub)
        self._commit()
        self._adjust_counter(assignment_id, -1)
        logger.info("Student %s removed submission %s", student_id, submission_id)

    async def delete_assignment_cascade(self, assignment_id: int, teacher_id: str) -> int:
        """Delete an assignment with all its submissions and their artifacts. Returns the submission count."""
        assignment = self._get_assignment(assignment_id)
        if assignment.teacher_id != teacher_id:
            raise PermissionDenied("You can only delete your own assignments")

        subs = self.db.query(Submission).filter(Submission.assignment_id == assignment_id).all()
        for sub in subs:
            if sub.artifact_ref:
                try:
                    await self._discard(sub.artifact_ref)
                except StorageError as e:
                    logger.warning("Could not delete submission file %s: %s", sub.artifact_ref, e)
            self.db.delete(sub)

        self.db.delete(assignment)
        self._commit()
        logger.info("Deleted assignment %s with %d submission(s)", assignment_id, len(subs))
        return len(subs)

    def grade_manually(
        self,
        submission_id: int,
        teacher_id: str,
        grade: float,
        feedback: str | None = None,
    ) -> Submission:
        sub = self._get_submission(submission_id)
        assignment = self._get_assignment(sub.assignment_id)
        if assignment.teacher_id != teacher_id:
            raise PermissionDenied("Only the assignment owner can grade")
        if grade < 0 or grade > assignment.max_points:
            raise InvalidInput(f"grade must be between 0 and {assignment.max_points:g}")

        sub.grade = grade
        if feedback is not None:
            sub.feedback = feedback
        sub.status = STATUS_GRADED
        sub.graded_at = datetime.now(timezone.utc)
        sub.graded_by = GRADED_BY_EDUCATOR
        self._commit()
        self.db.refresh(sub)
        return sub
