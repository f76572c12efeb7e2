from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import Optional
from app.config import ServerConfig, configure_logging
from app.routers import core_router
from app.services.server_runner import build_server, serve
from app.services.shutdown import ShutdownCoordinator, ShutdownRegistrationError
import asyncio
import logging
import sys

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application startup complete")
    yield
    # Shutdown
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(title="Core API", lifespan=lifespan)
    app.include_router(core_router.router)
    app.add_exception_handler(404, core_router.not_found_fallback)
    return app


app = create_app()


async def run(config: ServerConfig) -> None:
    server = build_server(app, config)
    await serve(server, ShutdownCoordinator())


def main(config: Optional[ServerConfig] = None) -> int:
    config = config or ServerConfig()
    configure_logging(config)
    try:
        asyncio.run(run(config))
    except ShutdownRegistrationError as e:
        logger.critical(f"Cannot start server: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
