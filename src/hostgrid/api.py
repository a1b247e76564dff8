"""FastAPI application answering every query through the Host header."""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, Response
from limits import parse as parse_limit
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings
from .database import init_db
from .dispatch import dispatch
from .parse import AdminAction, ParseError, extract_label, normalize_host, parse_query
from .render import Renderer
from .services import UserStore


limiter = Limiter(key_func=get_remote_address)
admin_limiter = FixedWindowRateLimiter(MemoryStorage())

app = FastAPI(title=settings.api_title)
app.state.limiter = limiter
app.state.renderer = Renderer(settings)
init_db()

logger = logging.getLogger(__name__)

ASSET_HEADERS = {"Access-Control-Allow-Origin": "*"}

# Prometheus counter to track requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)
PARSE_FAILURE_COUNTER = Counter(
    "query_parse_failures_total",
    "Queries rejected by the host or query parser",
    ["error"],
)

user_store = UserStore()


def get_store() -> UserStore:
    return user_store


def _rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> HTMLResponse:
    renderer: Renderer = request.app.state.renderer
    content = renderer.render_error("Too many requests.", f"Rate limit exceeded: {exc.detail}")
    return HTMLResponse(content, status_code=429)


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    host = request.headers.get("host", "")
    logger.info("request %s %s host %s", request.method, request.url.path, host)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s host %s status %s",
            request.method,
            request.url.path,
            host,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception("error handling %s %s host %s", request.method, request.url.path, host)
        raise


def _parse_failure(renderer: Renderer, exc: ParseError) -> HTMLResponse:
    PARSE_FAILURE_COUNTER.labels(error=type(exc).__name__).inc()
    logger.info("rejected query: %s", exc.message)
    content = renderer.render_error("Your query could not be understood.", exc.message)
    return HTMLResponse(content, status_code=400)


def _serve_asset(label: str, renderer: Renderer) -> Response | None:
    """Answer the reserved labels that are not queries."""
    if label == "assets-css":
        return Response(
            renderer.stylesheet, media_type="text/css; charset=utf-8", headers=ASSET_HEADERS
        )
    if label == "assets-font":
        if renderer.font is None:
            content = renderer.render_error("Not found.", "No font is configured on this server.")
            return HTMLResponse(content, status_code=404)
        return Response(renderer.font, media_type="font/woff2", headers=ASSET_HEADERS)
    if label == "metrics":
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
    return None


@app.get("/", response_class=HTMLResponse)
@limiter.limit(settings.request_rate_limit)
def handle_query(request: Request, store: UserStore = Depends(get_store)) -> Response:
    """Parse the subdomain query from the Host header and answer it."""
    renderer: Renderer = request.app.state.renderer
    hostname = normalize_host(request.headers.get("host", ""))

    try:
        label = extract_label(hostname, settings.site_hostname)
    except ParseError as exc:
        return _parse_failure(renderer, exc)

    asset = _serve_asset(label, renderer)
    if asset is not None:
        return asset

    try:
        command = parse_query(label, settings.admin_secret)
    except ParseError as exc:
        return _parse_failure(renderer, exc)

    if isinstance(command, AdminAction):
        client = get_remote_address(request)
        if not admin_limiter.hit(parse_limit(settings.admin_rate_limit), "admin", client):
            logger.warning("admin rate limit exceeded for %s", client)
            content = renderer.render_error(
                "Too many requests.", f"Rate limit exceeded: {settings.admin_rate_limit}"
            )
            return HTMLResponse(content, status_code=429)
        logger.warning("admin request %s from %s", command.subcommand.value, client)

    page = dispatch(command, store)
    return HTMLResponse(renderer.render(page), status_code=page.status_code)
