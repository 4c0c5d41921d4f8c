import logging

from fastapi import FastAPI

from gradeflow.core.logging_middleware import LoggingMiddleware
from gradeflow.db.init_db import init_db
from gradeflow.routers.assignments import router as assignments_router
from gradeflow.routers.submissions import router as submissions_router

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="gradeflow")

# Middleware
app.add_middleware(LoggingMiddleware)


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


app.include_router(assignments_router, tags=["assignments"])
app.include_router(submissions_router, tags=["submissions"])
