import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from avashift.core.config import settings
from avashift.core.errors import HTTP_STATUS_BY_KIND, ServiceError
from avashift.routers import admin, attendance, projects, requests, shifts

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("avashift")

app = FastAPI(title="Ava Shift API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
def service_error_handler(request: Request, exc: ServiceError):
    status_code = HTTP_STATUS_BY_KIND.get(exc.kind, 400)
    log.info("%s %s -> %s (%s): %s", request.method, request.url.path, status_code, exc.kind, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.kind, "message": exc.message},
    )


app.include_router(projects.router)
app.include_router(shifts.router)
app.include_router(attendance.router)
app.include_router(requests.router)
app.include_router(admin.router)


@app.get("/health")
def health():
    return {"status": "ok"}
