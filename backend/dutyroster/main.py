import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import Settings, get_settings
from .api import api_router
from .database import create_engine, create_session_factory
from .exceptions import PLANNING_ERRORS, StructuralValidationError
from .models import Base

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: Create tables
        engine = create_engine(settings)
        app.state.session_factory = create_session_factory(engine)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("%s started", settings.app_name)

        yield

        # Shutdown
        await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    # CORS
    origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def planning_error_handler(request: Request, exc: Exception):
        status_code = PLANNING_ERRORS[type(exc)]
        content = {"detail": str(exc)}
        if isinstance(exc, StructuralValidationError):
            content["errors"] = exc.errors
            logger.error("Structural validation failed on %s: %s", request.url.path, exc)
        else:
            logger.exception("Planning storage failure on %s", request.url.path, exc_info=exc)
        return JSONResponse(status_code=status_code, content=content)

    for error_class in PLANNING_ERRORS:
        app.add_exception_handler(error_class, planning_error_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": settings.app_name}

    return app


app = create_app()
