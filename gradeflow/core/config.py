import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DATABASE_URL = os.getenv("GRADEFLOW_DATABASE_URL", f"sqlite:///{BASE_DIR}/gradeflow.db")

# Evaluator (Gemini generateContent REST API)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
EVALUATOR_TIMEOUT_SECONDS = float(os.getenv("GRADEFLOW_EVALUATOR_TIMEOUT", "60"))

# Artifact storage
STORAGE_BACKEND = os.getenv("GRADEFLOW_STORAGE_BACKEND", "local")  # "local" or "s3"
STORAGE_ROOT = os.getenv("GRADEFLOW_STORAGE_ROOT", str(BASE_DIR / "storage"))
STORAGE_PUBLIC_URL = os.getenv("GRADEFLOW_STORAGE_PUBLIC_URL", "")
S3_BUCKET = os.getenv("S3_BUCKET", "")
S3_ENDPOINT = os.getenv("S3_ENDPOINT") or None
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY") or None
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY") or None
S3_REGION = os.getenv("S3_REGION", "auto")
S3_URL_EXPIRES_SECONDS = 7 * 24 * 3600

# Upload policy
MIB = 1024 * 1024
MAX_UPLOAD_BYTES = 20 * MIB
MAX_IMAGE_UPLOAD_BYTES = 10 * MIB  # images above this are rejected outright
MAX_INLINE_IMAGE_BYTES = 4 * MIB  # images above this are evaluated text-only

ALLOWED_MEDIA_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/markdown",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/zip",
    }
)

# Evaluator scores on a 0-100 scale; persisted grades are rescaled to max_points.
EVALUATOR_SCALE = 100
