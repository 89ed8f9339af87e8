"""FastAPI application routes, middleware, and metrics."""

import time
import uuid
from json import JSONDecodeError
from typing import List

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from structlog.contextvars import bind_contextvars, clear_contextvars

from city_finder.city_service.autocomplete import autocomplete_cities
from city_finder.city_service.resolve import resolve_city
from city_finder.errors import (
    CityFinderError,
    ConfigurationError,
    NotFound,
    UpstreamError,
    ValidationError,
)
from city_finder.health.health_check import (
    is_api_key_configured,
    is_geocoding_api_available,
)
from city_finder.logging_config import logger
from city_finder.models.city import AutocompleteSuggestion, ResolveResult
from city_finder.models.error import ErrorResponse
from city_finder.models.health import Dependencies, HealthResponse, ServiceStatus

app = FastAPI(title="City Finder")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    """Answer preflight requests and add CORS headers to every response."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


def _error(status_code: int, message: str) -> JSONResponse:
    """Build an error response carrying CORS headers.

    Args:
        status_code: HTTP status to return.
        message: Client-safe error message.

    Returns:
        A JSON response shaped as ErrorResponse.
    """
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=CORS_HEADERS,
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Convert short or missing input into 400 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised lookup error.

    Returns:
        A JSON response with the error message.
    """
    return _error(400, str(exc))


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    """Convert lookups without a usable match into 404 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised lookup error.

    Returns:
        A JSON response with the error message.
    """
    return _error(404, str(exc))


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Hide credential problems behind a generic 500 response.

    Args:
        request: Incoming HTTP request.
        exc: Raised lookup error.

    Returns:
        A JSON response with the error message.
    """
    return _error(500, "API configuration error")


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    """Convert provider failures into a retry-suggesting 500 response.

    Args:
        request: Incoming HTTP request.
        exc: Raised lookup error.

    Returns:
        A JSON response with the error message.
    """
    return _error(500, "Geocoding service unavailable, please try again")


@app.exception_handler(CityFinderError)
async def city_finder_error_handler(request: Request, exc: CityFinderError):
    """Convert any other lookup error into a generic 500 response.

    Args:
        request: Incoming HTTP request.
        exc: Raised lookup error.

    Returns:
        A JSON response with a generic error message.
    """
    return _error(500, "Internal server error")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Convert any other failure into a generic 500 without details.

    Args:
        request: Incoming HTTP request.
        exc: Unhandled exception.

    Returns:
        A JSON response with a generic error message.
    """
    logger.exception("UNHANDLED_ERROR", path=request.url.path, error=str(exc))
    return _error(500, "Internal server error")


async def _request_param(request: Request, name: str) -> str:
    """Read a parameter from the query string, falling back to a JSON body."""
    value = request.query_params.get(name)
    if value is None and request.method == "POST":
        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            body = None
        if isinstance(body, dict) and isinstance(body.get(name), str):
            value = body[name]
    return value or ""


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"message": "City Finder"}


@app.api_route(
    "/resolve-city",
    methods=["GET", "POST"],
    response_model=ResolveResult,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def resolve_city_endpoint(request: Request) -> ResolveResult:
    """Resolve a city name to its country, with alternatives if ambiguous.

    Returns:
        A ResolveResult for the best match.
    """
    city = await _request_param(request, "city")
    return await run_in_threadpool(resolve_city, city)


@app.api_route(
    "/autocomplete-cities",
    methods=["GET", "POST"],
    response_model=List[AutocompleteSuggestion],
)
async def autocomplete_cities_endpoint(request: Request) -> List[AutocompleteSuggestion]:
    """Suggest up to five cities for partial input; never fails."""
    query = await _request_param(request, "q")
    return await run_in_threadpool(autocomplete_cities, query)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report API health and dependency availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    geocoding_api_available = await is_geocoding_api_available()
    return HealthResponse(
        status="ok",
        dependencies=Dependencies(
            geocoding_api=ServiceStatus.available
            if geocoding_api_available
            else ServiceStatus.not_available,
            api_key=is_api_key_configured(),
        ),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
