from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SubmissionRead(BaseModel):
    id: int
    assignment_id: int
    student_id: str
    artifact_name: str
    artifact_media_type: str
    artifact_size: int
    artifact_url: Optional[str] = None
    submitted_at: datetime
    status: str
    grade: Optional[float] = None
    feedback: Optional[str] = None
    suggestions: Optional[list[str]] = None
    graded_at: Optional[datetime] = None
    graded_by: Optional[str] = None
    degraded: bool = False

    # attached per response: pending-review / degraded-evaluation message
    notice: Optional[str] = None

    class Config:
        from_attributes = True


class SubmissionGradeUpdate(BaseModel):
    grade: float = Field(ge=0)
    feedback: Optional[str] = None
