'''
Application entry point: builds the FastAPI app, its lifespan, middleware,
error handlers and routers.
'''
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError

from .database.engine import Database
from .common.exceptions import ConflictError, ServerError, ValidationError, is_unique_violation
from .common.logger import log
from .common.config import settings
from .common.storage import FileStorage, UPLOAD_URL_PREFIX
from .api import auth, classes, students, tuitions, grades, documents, materials, dashboard

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    # --- On App Startup ---
    log.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}...")
    database = Database(settings.database_url)
    app.state.database = database
    if settings.AUTO_CREATE_TABLES:
        await database.create_all()
    FileStorage().ensure_directory()

    yield # --- Application is now running ---

    # --- On App Shutdown ---
    log.info("Application lifespan shutdown...")
    await database.dispose()


# ---- CREATING THE APP ----
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# --- Add CORS Middleware ---
origins = [
    # URL of local frontend
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

# Extend with environment-specific origins
origins.extend(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],)
# --- End of CORS Middleware ---


# --- Error Handlers ---
def _error_response(exc) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures are reported as a 400 with the first offending field."""
    errors = exc.errors()
    first = errors[0] if errors else {"loc": (), "msg": "Invalid request data."}
    field = ".".join(str(part) for part in first["loc"] if part != "body")
    message = f"{field}: {first['msg']}" if field else first["msg"]
    log.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return _error_response(ValidationError(message))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    if is_unique_violation(exc):
        log.warning(f"Unique constraint violated on {request.method} {request.url.path}: {exc.orig}")
        return _error_response(ConflictError())
    log.error(f"Integrity error on {request.method} {request.url.path}: {exc.orig}", exc_info=True)
    return _error_response(ServerError())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(ServerError())


# --- Health ---
@app.get("/")
async def root():
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}


@app.get("/api/health", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(classes.router)
app.include_router(students.admin_router)
app.include_router(students.router)
app.include_router(tuitions.router)
app.include_router(grades.router)
app.include_router(documents.router)
app.include_router(materials.router)
app.include_router(dashboard.router)

# Uploaded files are served as-is from the upload directory
app.mount(
    UPLOAD_URL_PREFIX.rstrip("/"),
    StaticFiles(directory=settings.upload_path, check_dir=False),
    name="uploads",
)
