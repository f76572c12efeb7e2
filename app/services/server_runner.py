from contextlib import contextmanager
from fastapi import FastAPI
from typing import List
from app.config import ServerConfig
from app.services.shutdown import ShutdownCoordinator
import asyncio
import logging
import uvicorn

logger = logging.getLogger(__name__)


class CoordinatedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the shutdown coordinator"""

    @contextmanager
    def capture_signals(self):
        yield

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            for address in self.bound_addresses():
                logger.info(f"listening on: {address}")

    def bound_addresses(self) -> List[str]:
        addresses = []
        for server in getattr(self, "servers", []):
            for sock in server.sockets:
                host, port = sock.getsockname()[:2]
                addresses.append(f"{host}:{port}")
        return addresses


def build_server(app: FastAPI, config: ServerConfig) -> CoordinatedServer:
    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=config.log_level.lower(),
        timeout_graceful_shutdown=config.graceful_timeout,
    )
    return CoordinatedServer(uvicorn_config)


async def serve(server: CoordinatedServer, coordinator: ShutdownCoordinator) -> None:
    """
    Serve until the coordinator fires, then drain in-flight requests.

    The coordinator is armed before the listening socket is bound, so a
    signal registration failure aborts startup without accepting traffic.
    """
    with coordinator:
        serve_task = asyncio.ensure_future(server.serve())
        shutdown_task = asyncio.ensure_future(coordinator.wait())
        try:
            done, _ = await asyncio.wait(
                {serve_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if shutdown_task in done:
                logger.info(f"Shutdown requested ({shutdown_task.result()}), draining connections")
                # uvicorn skips its shutdown sequence if asked to exit mid-startup
                while not server.started and not serve_task.done():
                    await asyncio.sleep(0.05)
                server.should_exit = True
                await serve_task
                logger.info("Server stopped")
                return

            shutdown_task.cancel()
            await asyncio.gather(shutdown_task, return_exceptions=True)
            serve_task.result()
        finally:
            leftover = [task for task in (serve_task, shutdown_task) if not task.done()]
            for task in leftover:
                task.cancel()
            await asyncio.gather(*leftover, return_exceptions=True)
