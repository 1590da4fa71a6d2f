"""FastAPI application entrypoint. No business logic; only wiring, middleware and error mapping."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as v1_router
from app.core.config import Settings, get_settings
from app.core.errors import DependencyError
from app.core.security import BcryptPasswordHasher, SigningConfig, TokenIssuer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def _dependency_error_handler(request: Request, exc: DependencyError) -> JSONResponse:
    logger.error("Backing store unavailable", extra={"path": request.url.path, "reason": exc.message})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"errors": ["service temporarily unavailable"]},
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application. Raises ConfigurationError when JWT_SECRET is missing,
    so a misconfigured process never starts serving.
    """
    settings = settings or get_settings()
    signing = SigningConfig.from_settings(settings)

    app = FastAPI(
        title="Ecommerce API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer(signing)
    app.state.password_hasher = BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DependencyError, _dependency_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Ecommerce API"}

    logger.info("Application configured", extra={"app_env": settings.APP_ENV})
    return app


app = create_app()
