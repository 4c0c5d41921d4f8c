from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from gradeflow.core import config
from gradeflow.db.session import SessionLocal
from gradeflow.services.evaluation import EvaluationClient
from gradeflow.services.submissions import SubmissionService
from gradeflow.storage.base import ArtifactStorage


# every request that needs DB will get a fresh session, and it will always close.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_storage() -> ArtifactStorage:
    if config.STORAGE_BACKEND == "s3":
        from gradeflow.storage.s3 import S3ArtifactStorage

        return S3ArtifactStorage(bucket=config.S3_BUCKET)

    from gradeflow.storage.local import LocalFileStorage

    return LocalFileStorage(config.STORAGE_ROOT, public_url=config.STORAGE_PUBLIC_URL)


def get_evaluator() -> EvaluationClient:
    return EvaluationClient()


def get_submission_service(
    db: Session = Depends(get_db),
    storage: ArtifactStorage = Depends(get_storage),
    evaluator: EvaluationClient = Depends(get_evaluator),
) -> SubmissionService:
    return SubmissionService(db, storage, evaluator)
