from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    instructions: Optional[str] = None
    max_points: float = Field(default=100, gt=0)
    due_date: Optional[datetime] = None
    status: Literal["draft", "published"] = "published"


class AssignmentStatusUpdate(BaseModel):
    status: Literal["draft", "published"]


class AssignmentRead(BaseModel):
    id: int
    teacher_id: str
    title: str
    instructions: Optional[str]
    max_points: float
    due_date: Optional[datetime]
    status: str
    total_submissions: int
    created_at: datetime

    class Config:
        from_attributes = True
