from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db
from app.features.permissions.rbac import Role
from app.features.permissions.routes import router as permission_router
from app.features.users.routes import router as user_router
from app.features.users.dependencies import get_authorization_header
from app.utils import get_logger


log = get_logger(__name__)

API_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(_app: FastAPI):
    log.info("Creating tables")
    await init_db()
    yield


log.info("Initializing authorization service")
app = FastAPI(
    title="University CMS Authorization",
    description="Role and attribute based access control for the university CMS",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)

# One bucket per Authorization header; anonymous callers share one
limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class LogTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug("%s took %.4fs %s", metric_name.removeprefix("authz.app.features."), timing, tags)


app.add_middleware(TimingMiddleware, client=LogTimings(), metric_namer=StarletteScopeToName("authz", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("CORS allowed for %s", config.ALLOW_ORIGIN)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.ALLOW_ORIGIN],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """Flatten pydantic errors to {field: message}; unknown role/resource/action tags land here."""
    errors = {
        ("root" if err["loc"][-1] == "__root__" else err["loc"][-1]): err["msg"]
        for err in exc.errors()
        if err.get("loc") and "msg" in err
    }
    log.info("Rejected request body: %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.get("/")
async def root():
    """Service description."""
    return {
        "message": "University CMS Authorization API",
        "version": API_VERSION,
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": "Appwrite JWT as a Bearer token; callers without one are evaluated as GUEST",
        "roles": [role.value for role in Role],
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}


app.include_router(user_router, prefix="/users", tags=["users"])
app.include_router(permission_router, prefix="/permissions", tags=["permissions"])
