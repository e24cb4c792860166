from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import analytics_router
from app.api.v1 import connection_router
from app.api.v1 import enhance_router
from app.api.v1 import handle_router
from app.api.v1 import invite_router
from app.api.v1 import message_router
from app.api.v1 import profile_router
from app.api.v1 import recommendation_router
from app.api.v1 import verification_router
from app.core.config import get_settings
from app.core.limiter import limiter
from app.core.logging import setup_logging

settings = get_settings()
setup_logging(settings.LOG_LEVEL, serialize=settings.ENVIRONMENT == "production")

app = FastAPI(
    title="Verified Doctor API",
    description="Profile, recommendation, connection, verification and inquiry endpoints for verified doctors.",
    version="1.0.0"
)

origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "https://verified.doctor",
    "https://www.verified.doctor",
]

app.state.limiter = limiter

app.include_router(recommendation_router.router, prefix="/api/v1")
app.include_router(handle_router.router, prefix="/api/v1")
app.include_router(message_router.router, prefix="/api/v1")
app.include_router(analytics_router.router, prefix="/api/v1")
app.include_router(enhance_router.router, prefix="/api/v1")
app.include_router(profile_router.router, prefix="/api/v1")
app.include_router(connection_router.router, prefix="/api/v1")
app.include_router(invite_router.router, prefix="/api/v1")
app.include_router(verification_router.router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error envelope: every error body is {"error": "..."} ---

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.info(f"Validation failed on {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"error": message})

@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": "Rate limit exceeded. Slow down."})

@app.get("/", tags=["Root"], include_in_schema=False)
async def read_root():
    return {"message": "Welcome to the Verified Doctor API."}
