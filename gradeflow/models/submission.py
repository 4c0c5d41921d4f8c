from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from gradeflow.db.base_class import Base

STATUS_SUBMITTED = "submitted"
STATUS_GRADED = "graded"

GRADED_BY_EVALUATOR = "evaluator"
GRADED_BY_EDUCATOR = "educator"


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)

    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(128), nullable=False, index=True)

    # storage locator + retrievable URL for the uploaded artifact
    artifact_ref = Column(String(1024), nullable=False)
    artifact_url = Column(String(2048), nullable=True)
    artifact_name = Column(String(255), nullable=False)
    artifact_media_type = Column(String(255), nullable=False)
    artifact_size = Column(Integer, nullable=False, default=0)

    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_SUBMITTED)

    # Grading fields (nullable until graded)
    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    suggestions = Column(JSON, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(String(16), nullable=True)

    # evaluated from placeholders instead of full content
    degraded = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    assignment = relationship("Assignment", back_populates="submissions")
