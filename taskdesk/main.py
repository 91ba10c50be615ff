import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskdesk.config.settings import settings
from taskdesk.exceptions import TaskDeskError
from taskdesk.routers import approvals, departments, roles, tasks, users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="TaskDesk API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskDeskError)
async def taskdesk_error_handler(request: Request, exc: TaskDeskError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


# Route registration
app.include_router(tasks.router)
app.include_router(approvals.router)
app.include_router(users.router)
app.include_router(departments.router)
app.include_router(roles.router)


# Root route
@app.get("/")
def read_root():
    return {"message": "TaskDesk API"}


@app.get("/health")
def health():
    return {"status": "ok"}
