import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .settings import settings
from .db import dispose_db, init_db, new_session
from . import services
from .querying import FilterError
from .routes import auth, participants, checkpoints, competitions, race_events, races, timings

logging.basicConfig(
    level=settings.RT_LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("racetiming")

app = FastAPI(title="Race Timing System")

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.RT_SECRET_KEY,
    session_cookie="rt_session",
    max_age=settings.RT_SESSION_MAX_AGE,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

@app.on_event("startup")
def _startup() -> None:
    init_db()
    # Ensure the configured admin account exists
    s = new_session()
    try:
        services.ensure_admin_user(s)
    finally:
        s.close()
    logger.info("Race timing backend started")

@app.on_event("shutdown")
def _shutdown() -> None:
    dispose_db()

# ---------------------------
# Error handlers
# ---------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected %s %s: invalid request", request.method, request.url.path)
    return JSONResponse(
        {"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )

@app.exception_handler(services.ConflictError)
async def conflict_handler(request: Request, exc: services.ConflictError) -> JSONResponse:
    logger.warning("Conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=409)

@app.exception_handler(FilterError)
async def filter_error_handler(request: Request, exc: FilterError) -> JSONResponse:
    logger.warning("Bad filter on %s: %s", request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=400)

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        # raised while building a response model
        logger.exception("Failed to build response for %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=400)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)

# ---------------------------
# Routes
# ---------------------------

@app.get("/", response_class=PlainTextResponse)
def root():
    return "Race Timing System Backend Running"

app.include_router(auth.router)
app.include_router(participants.router)
app.include_router(checkpoints.router)
app.include_router(competitions.router)
app.include_router(race_events.router)
app.include_router(races.router)
app.include_router(timings.router)
