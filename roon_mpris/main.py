import asyncio
import logging
import signal
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from roon_mpris.config import settings
from roon_mpris.discovery.manager import RoonSessionManager
from roon_mpris.mpris.player import MprisSurface
from roon_mpris.routers import events, playback, system, zones
from roon_mpris.services.artwork import ArtworkCache
from roon_mpris.services.status import StatusBoard
from roon_mpris.sync.synchronizer import Synchronizer


def setup_logging() -> None:
    """Configure structlog for structured logging."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel("DEBUG" if settings.debug else settings.log_level.upper())

    # Quiet noisy loggers
    logging.getLogger("roonapi").setLevel(logging.WARNING)
    logging.getLogger("websocket").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_session(session: RoonSessionManager, status: StatusBoard) -> None:
    logger = structlog.get_logger()
    try:
        await session.run()
    except (ConnectionError, TimeoutError, OSError) as exc:
        logger.error("Could not reach a Roon Core", error=str(exc))
        status.set_status(f"Roon Core unreachable: {exc}", True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger = structlog.get_logger()
    logger.info("Starting Roon MPRIS bridge", port=settings.api_port, zone=settings.zone or None)

    status = StatusBoard()
    surface = MprisSurface(bus_name=settings.bus_name)
    synchronizer = Synchronizer(
        surface=surface,
        status=status,
        artwork=ArtworkCache(settings.art_cache_dir),
        preference=settings.zone,
        on_quit=lambda: signal.raise_signal(signal.SIGTERM),
    )
    app.state.status_board = status
    app.state.synchronizer = synchronizer

    await surface.start(synchronizer)
    synchronizer.start()

    session = RoonSessionManager(settings, synchronizer)
    session_task = asyncio.create_task(run_session(session, status))

    yield

    logger.info("Shutting down Roon MPRIS bridge")
    session_task.cancel()
    try:
        await session_task
    except asyncio.CancelledError:
        pass
    await session.stop()
    await surface.stop()


app = FastAPI(
    title="Roon MPRIS Bridge",
    description="Diagnostics API for the Roon to MPRIS bridge",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url="/docs")


# Register routers
app.include_router(system.router, tags=["system"])
app.include_router(zones.router, tags=["zones"])
app.include_router(playback.router, tags=["playback"])
app.include_router(events.router, tags=["events"])


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger = structlog.get_logger()
    logger.exception("Unhandled error", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)},
    )


def run() -> None:
    """Console entry point."""
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
