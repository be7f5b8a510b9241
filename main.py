# main.py
from fastapi import FastAPI, Query, Request as FastAPIRequest
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from dotenv import load_dotenv
from typing import List, Optional
import os
import time
import uuid

load_dotenv()

from models import (
    ErrorResponse,
    HealthAnalysisRequest,
    HealthAnalysisResponse,
    HealthSearch,
    HealthSearchCreate,
    Profile,
    ProfileUpdate,
)
from analysis.interpret import HealthAnalyzer
from config import Settings, load_settings, log_validation_result, validate_environment_variables
from gateway_client import GatewayError, PaymentRequiredError, RateLimitError
from storage.dynamodb import ProfileStore, RecordNotFoundError, SearchHistoryStore, StorageError

from logging_config import (
    setup_logging,
    get_logger,
    get_request_logger,
    log_error,
    log_request_start,
    log_request_end,
)

setup_logging()
logger = get_logger(__name__)

app = FastAPI(title="Medi Portal Health Analysis API", version="1.0.0")

logger.info("Medi Portal Health Analysis API starting up")
log_validation_result(validate_environment_variables(), logger)


def get_cors_origins():
    """
    Get allowed CORS origins from environment variable.
    In production, wildcard is not allowed.
    """
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if allowed_origins_env:
        origins = [origin.strip() for origin in allowed_origins_env.split(",") if origin.strip()]

        if environment == "production" and "*" in origins:
            error_msg = "Wildcard '*' is not allowed in ALLOWED_ORIGINS for production environment"
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.info(f"CORS origins configured: {origins}")
        return origins

    if environment == "production":
        error_msg = "ALLOWED_ORIGINS must be explicitly set in production environment"
        logger.error(error_msg)
        raise ValueError(error_msg)
    logger.info("CORS origins: wildcard (development mode)")
    return ["*"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Client-Info", "apikey"],
)


# ─────────────────────────────────────────
# Lazily built collaborators
# ─────────────────────────────────────────

_settings: Optional[Settings] = None
_analyzer: Optional[HealthAnalyzer] = None
_search_store: Optional[SearchHistoryStore] = None
_profile_store: Optional[ProfileStore] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_analyzer() -> HealthAnalyzer:
    global _analyzer
    if _analyzer is None:
        _analyzer = HealthAnalyzer(get_settings())
    return _analyzer


def get_search_store() -> SearchHistoryStore:
    global _search_store
    if _search_store is None:
        settings = get_settings()
        _search_store = SearchHistoryStore(settings.searches_table_name, region=settings.aws_region)
    return _search_store


def get_profile_store() -> ProfileStore:
    global _profile_store
    if _profile_store is None:
        settings = get_settings()
        _profile_store = ProfileStore(settings.profiles_table_name, region=settings.aws_region)
    return _profile_store


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if location:
        return f"Invalid request: {location}: {first.get('msg')}"
    return f"Invalid request: {first.get('msg')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: FastAPIRequest, exc: RequestValidationError):
    """Return malformed requests as ``{error}`` bodies.

    The analysis endpoint keeps its 429/402/500 contract, so a bad body there
    is a 500. The other endpoints answer 422.
    """
    message = describe_validation_error(exc)
    logger.warning(
        f"Rejected invalid request to {request.url.path}: {message}",
        extra={"extra_fields": {"endpoint": request.url.path}},
    )
    status_code = 500 if request.url.path == "/health-analysis" else 422
    return error_response(status_code, message)


@app.middleware("http")
async def log_requests(request: FastAPIRequest, call_next):
    """Log every HTTP request with a request id and its duration."""
    request_id = str(uuid.uuid4())
    start_time = time.time()

    log_request_start(
        logger,
        endpoint=request.url.path,
        extra={
            "request_id": request_id,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )

    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        log_error(
            logger,
            e,
            f"Request failed: {request.url.path}",
            extra={"request_id": request_id, "method": request.method, "duration_ms": duration_ms},
        )
        return error_response(500, "Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    log_request_end(
        logger,
        endpoint=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
        extra={"request_id": request_id, "method": request.method},
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health")
def health():
    return {"status": "ok"}


# ─────────────────────────────────────────
# ANALYSIS
# ─────────────────────────────────────────

@app.post(
    "/health-analysis",
    response_model=HealthAnalysisResponse,
    response_model_exclude_none=True,
    responses={
        402: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def health_analysis(req: HealthAnalysisRequest):
    """Forward the conversation to the AI gateway and interpret its reply."""
    request_logger = get_request_logger(__name__, user_id=req.user_id, endpoint="/health-analysis")

    try:
        request_logger.info(f"Processing health analysis, severity={req.severity_level.value}")
        result = get_analyzer().analyze(req.messages, req.severity_level, user_id=req.user_id)
    except (RateLimitError, PaymentRequiredError) as e:
        request_logger.warning(f"AI gateway refused request: {e.message}")
        return error_response(e.status_code, e.message)
    except GatewayError as e:
        log_error(request_logger, e, "Error in health-analysis", {"user_id": req.user_id})
        return error_response(e.status_code, e.message)
    except Exception as e:
        log_error(request_logger, e, "Unexpected error in health-analysis", {"user_id": req.user_id})
        return error_response(500, "An error occurred")

    request_logger.info(
        "Health analysis completed successfully",
        extra={"extra_fields": {"emergency": result.emergency, "diseases": result.diseases}},
    )
    return result


# ─────────────────────────────────────────
# SEARCH HISTORY
# ─────────────────────────────────────────

@app.post("/searches", response_model=HealthSearch, status_code=201)
def create_search(search: HealthSearchCreate):
    request_logger = get_request_logger(__name__, user_id=search.user_id, endpoint="/searches")
    try:
        record = get_search_store().create_search(search)
    except StorageError as e:
        log_error(request_logger, e, "Failed to save search")
        return error_response(500, "Failed to save search")

    request_logger.info("Search saved", extra={"extra_fields": {"search_id": record.id}})
    return record


@app.get("/searches", response_model=List[HealthSearch])
def list_searches(
    user_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    request_logger = get_request_logger(__name__, user_id=user_id, endpoint="/searches")
    try:
        return get_search_store().list_searches(user_id, limit=limit)
    except StorageError as e:
        log_error(request_logger, e, "Failed to load history")
        return error_response(500, "Failed to load history")


@app.delete("/searches/{search_id}", status_code=204)
def delete_search(search_id: str, user_id: str = Query(..., min_length=1)):
    request_logger = get_request_logger(__name__, user_id=user_id, endpoint="/searches")
    try:
        get_search_store().delete_search(search_id, user_id)
    except RecordNotFoundError:
        return error_response(404, "Search not found")
    except StorageError as e:
        log_error(request_logger, e, "Failed to delete search", {"search_id": search_id})
        return error_response(500, "Failed to delete search")

    request_logger.info("Search deleted", extra={"extra_fields": {"search_id": search_id}})
    return Response(status_code=204)


# ─────────────────────────────────────────
# PROFILE
# ─────────────────────────────────────────

@app.get("/profiles/{user_id}", response_model=Profile)
def get_profile(user_id: str):
    request_logger = get_request_logger(__name__, user_id=user_id, endpoint="/profiles")
    try:
        return get_profile_store().get_profile(user_id)
    except RecordNotFoundError:
        return error_response(404, "Profile not found")
    except StorageError as e:
        log_error(request_logger, e, "Failed to load profile")
        return error_response(500, "Failed to load profile")


@app.put("/profiles/{user_id}", response_model=Profile)
def save_profile(user_id: str, update: ProfileUpdate):
    request_logger = get_request_logger(__name__, user_id=user_id, endpoint="/profiles")
    try:
        profile = get_profile_store().upsert_profile(user_id, update)
    except StorageError as e:
        log_error(request_logger, e, "Failed to save profile")
        return error_response(500, "Failed to save profile")

    request_logger.info("Profile updated successfully")
    return profile


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
    )
