"""
FastAPI server for the PawMatch Discovery Service.

Exposes:
  - GET /health - Health check
  - POST /find-pet-matches - Radius-based compatibility matching
  - POST /search-pet-friends - Name-based pet search
  - POST /rate-limit - Sliding-window attempt check
  - GET /docs - Interactive API documentation (Swagger UI)
  - GET /openapi.json - OpenAPI schema
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, HTTPException, Request, status, Header
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Dict, Any, List, Optional, Annotated
import time

# Import configuration (loads .env automatically)
from src.config import config, validate_config

# Import logging setup
from src.utils.logging_config import logger, setup_logging

from src.graphs.matching import find_pet_matches
from src.graphs.search import search_pet_friends
from src.tools.rate_limiter import check_rate_limit
from src.utils.errors import (
    DependencyError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RateLimitExceeded,
)

# Setup logging
setup_logging(debug=config.DEBUG, log_file=config.LOG_FILE)

# ============================================================
# VALIDATE CONFIGURATION AT STARTUP
# ============================================================
try:
    config_status = validate_config()
    logger.info("Configuration validated successfully")
    for key, value in config_status.items():
        logger.info(f"  {key}: {value}")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    exit(1)

# ============================================================
# FASTAPI APPLICATION
# ============================================================
app = FastAPI(
    title="PawMatch Discovery Service",
    description="Pet compatibility matching, friend search and rate limiting",
    version="1.0.0",
)

# ============================================================
# CORS CONFIGURATION
# ============================================================
# Allow requests from the web/mobile client during dev and production.
origins = [
    "http://localhost:5173",  # Vite dev
    "http://localhost:3000",  # React dev
    "capacitor://localhost",  # Mobile shell
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# REQUEST/RESPONSE MODELS
# ============================================================
class MatchRequest(BaseModel):
    """
    Request body for /find-pet-matches.

    Attributes:
        petId (str): Requesting pet.
        latitude (float): Requester latitude in decimal degrees.
        longitude (float): Requester longitude in decimal degrees.
        radius (float): Search radius in km. Defaults to DEFAULT_RADIUS_KM,
                        clamped to [MIN_RADIUS_KM, MAX_RADIUS_KM].
        userId (str): Authenticated owner; when set, must own petId.
    """
    petId: str
    latitude: float
    longitude: float
    radius: Optional[float] = None
    userId: Optional[str] = None


class MatchResponse(BaseModel):
    matches: List[Dict[str, Any]]


class SearchRequest(BaseModel):
    """
    Request body for /search-pet-friends.

    Attributes:
        petId (str): Requesting pet.
        searchQuery (str): Name or username fragment.
        latitude/longitude (float): Optional; enables distance ordering.
        maxDistance (float): Accepted for client compatibility; search is
                             not geo-filtered.
        userId (str): Authenticated owner; when set, must own petId.
    """
    petId: str
    searchQuery: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    maxDistance: Optional[float] = None
    userId: Optional[str] = None


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]


class RateLimitRequest(BaseModel):
    """
    Request body for /rate-limit.

    Attributes:
        identifier (str): IP address or user id.
        action (str): Guarded action name (e.g. 'friend_request').
        window_minutes (int): Window override. Default from config (15).
        max_attempts (int): Attempts override. Default from config (5).
    """
    identifier: str
    action: str
    window_minutes: Optional[int] = None
    max_attempts: Optional[int] = None


class RateLimitResponse(BaseModel):
    allowed: bool
    attempts_remaining: int
    window_minutes: int
    max_attempts: int


# ============================================================
# AUTHENTICATION
# ============================================================
def require_service_token(
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """Validate the shared service token when one is configured."""
    if config.SERVICE_TOKEN:
        expected = f"Bearer {config.SERVICE_TOKEN}"
        if authorization != expected:
            logger.warning("Unauthorized request: invalid or missing token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    return "unknown"


# ============================================================
# MIDDLEWARE
# ============================================================
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """
    Middleware to track request processing time.

    Adds X-Process-Time header to all responses showing how long request took.
    """
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# ============================================================
# ROUTES
# ============================================================

@app.get("/health", tags=["System"])
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        dict: {"status": "healthy"}
    """
    return {"status": "healthy"}


@app.post(
    "/find-pet-matches",
    response_model=MatchResponse,
    tags=["Discovery"],
    dependencies=[Depends(require_service_token)],
)
def find_matches(request: MatchRequest) -> MatchResponse:
    """
    Return up to ten nearby pets ranked by compatibility score.

    Each match carries the candidate profile with approximate coordinates,
    `distance` (km, one decimal) and `compatibilityScore` (0-100).
    """
    start_time = time.time()
    matches = find_pet_matches(
        pet_id=request.petId,
        latitude=request.latitude,
        longitude=request.longitude,
        radius_km=request.radius,
        user_id=request.userId,
    )
    logger.info(
        "find-pet-matches summary: matches=%s time=%.2fs",
        len(matches),
        time.time() - start_time,
    )
    return MatchResponse(matches=matches)


@app.post(
    "/search-pet-friends",
    response_model=SearchResponse,
    tags=["Discovery"],
    dependencies=[Depends(require_service_token)],
)
def search_friends(request: SearchRequest) -> SearchResponse:
    """
    Search available pets by name or username.

    Ordered by distance when coordinates are supplied, otherwise by name.
    """
    start_time = time.time()
    results = search_pet_friends(
        pet_id=request.petId,
        search_query=request.searchQuery,
        latitude=request.latitude,
        longitude=request.longitude,
        max_distance_km=request.maxDistance,
        user_id=request.userId,
    )
    logger.info(
        "search-pet-friends summary: results=%s time=%.2fs",
        len(results),
        time.time() - start_time,
    )
    return SearchResponse(results=results)


@app.post(
    "/rate-limit",
    response_model=RateLimitResponse,
    tags=["Security"],
    dependencies=[Depends(require_service_token)],
)
def rate_limit(
    body: RateLimitRequest,
    request: Request,
    user_agent: Annotated[Optional[str], Header()] = None,
) -> RateLimitResponse:
    """
    Record an attempt for (identifier, action) or reject it with 429.

    A failure of the attempt log never blocks the caller (fail-open).
    """
    decision = check_rate_limit(
        body.identifier,
        body.action,
        window_minutes=body.window_minutes,
        max_attempts=body.max_attempts,
        ip_address=_client_ip(request),
        user_agent=user_agent or "unknown",
    )
    if not decision.allowed:
        raise RateLimitExceeded(decision)

    return RateLimitResponse(
        allowed=True,
        attempts_remaining=decision.attempts_remaining,
        window_minutes=decision.window_minutes,
        max_attempts=decision.max_attempts,
    )


@app.get("/", tags=["System"])
async def root() -> Dict[str, str]:
    """
    Root endpoint.

    Returns information about the API and how to access documentation.
    """
    return {
        "service": "PawMatch Discovery Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# ============================================================
# ERROR HANDLERS
# ============================================================

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": message,
            "status_code": status_code,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle HTTP exceptions with consistent error response format.
    """
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    Report malformed or missing body fields as 400 instead of FastAPI's 422.
    """
    fields = sorted(
        {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
    )
    message = "Invalid request body"
    if fields:
        message = f"Missing or invalid fields: {', '.join(fields)}"
    logger.warning(message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    return _error_response(status.HTTP_403_FORBIDDEN, str(exc))


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(DependencyError)
async def dependency_error_handler(request: Request, exc: DependencyError):
    """
    Storage failures during discovery are terminal; partial results would mislead.
    """
    logger.error(f"Dependency failure: {str(exc)}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    decision = exc.decision
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Rate limit exceeded",
            "allowed": False,
            "attempts_remaining": 0,
            "reset_time": decision.reset_time.isoformat() if decision.reset_time else None,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected exceptions.

    Never returns the internal error message to the client; use logging instead.
    """
    logger.error(f"Unhandled exception: {str(exc)}")
    logger.exception("Full traceback:")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


# ============================================================
# STARTUP EVENTS
# ============================================================

@app.on_event("startup")
async def startup_event():
    """
    Run when the application starts.

    Configuration is already validated above (in module-level code),
    but we log it again here for visibility.
    """
    logger.info("=" * 60)
    logger.info("PawMatch Discovery Service Starting Up")
    logger.info("=" * 60)
    logger.info(f"Firebase Project: {config.FIREBASE_PROJECT_ID}")
    logger.info(f"Debug Mode: {config.DEBUG}")
    logger.info(f"Candidate Page Size: {config.CANDIDATE_PAGE_SIZE}")
    logger.info(
        f"Radius: default={config.DEFAULT_RADIUS_KM}km "
        f"range=[{config.MIN_RADIUS_KM}, {config.MAX_RADIUS_KM}]km"
    )
    logger.info(
        f"Rate Limit Defaults: {config.RATE_LIMIT_MAX_ATTEMPTS} attempts / "
        f"{config.RATE_LIMIT_WINDOW_MINUTES} min"
    )
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """
    Run when the application shuts down.
    """
    logger.info("PawMatch Discovery Service Shutting Down")


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    """
    Run with: python -m uvicorn src.server:app --reload
    """
    import uvicorn
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="info" if not config.DEBUG else "debug"
    )
