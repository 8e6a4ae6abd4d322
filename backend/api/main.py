"""
ScriptMenu API Main Application.

FastAPI application hosting the command tree, with CORS, error handling and
lifecycle management of the synchronizer and watcher.
Requires Python 3.11+.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_synchronizer, get_watcher, set_components
from api.routes.websocket import feed
from commands.models import count_leaves
from commands.synchronizer import SyncStats, TreeSynchronizer
from scripting.bootstrap import ensure_scripts_directory
from scripting.interpreters import InterpreterRegistry
from scripting.runner import ScriptRunner
from utils.config import get_settings
from utils.logger import configure_logging, get_logger
from watcher.directory_watcher import DirectoryWatcher


# Initialize logging
configure_logging()
logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Builds the command tree from disk, then starts watching it.
    """
    settings = get_settings()
    scripts_dir = settings.scripts.directory
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        scripts_directory=str(scripts_dir),
    )

    ensure_scripts_directory(scripts_dir, seed_examples=settings.scripts.seed_examples)

    registry = InterpreterRegistry.default()
    runner = ScriptRunner(
        registry,
        config=settings,
        machine=app.state.machine,
        gui=app,
    )
    watcher = DirectoryWatcher() if settings.watcher.enabled else None
    synchronizer = TreeSynchronizer(
        scripts_dir,
        extensions=registry.extensions(),
        leaf_action=runner.run,
        watcher=watcher,
        ignore_patterns=settings.scripts.ignore_patterns,
    )
    synchronizer.synchronize()

    # Passes run off the event loop; hand broadcasts back to it
    loop = asyncio.get_running_loop()

    def _publish(stats: SyncStats) -> None:
        asyncio.run_coroutine_threadsafe(feed.publish(stats, synchronizer.snapshot()), loop)

    synchronizer.add_listener(_publish)

    if watcher is not None:
        watcher.set_callback(synchronizer.synchronize)
        watcher.start()

    set_components(synchronizer, watcher)

    yield

    # Cleanup
    logger.info("shutting_down_application")
    if watcher is not None:
        watcher.stop()
    set_components(None, None)


def create_app(machine: Any = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        machine: Opaque machine handle exposed to scripts as ``machine``

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Directory-backed script command tree",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    application.state.machine = machine

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "An unexpected error occurred",
            },
        )

    # Health check endpoint
    @application.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        synchronizer = get_synchronizer()
        watcher = get_watcher()
        scripts = 0
        if synchronizer is not None:
            with synchronizer.lock:
                scripts = count_leaves(synchronizer.root)
        return {
            "status": "healthy",
            "version": settings.app_version,
            "scripts": scripts,
            "watching": watcher is not None and watcher.is_running,
        }

    # Import and include routers here to avoid circular imports
    from api.routes import commands, websocket

    application.include_router(commands.router, prefix="/commands", tags=["Commands"])
    application.include_router(websocket.router, prefix="/ws", tags=["WebSocket"])

    return application


# Create the application instance
app = create_app()
