"""Entry point for running the documentation MCP server."""

import asyncio
import logging

from fastapi import FastAPI
import uvicorn
from dotenv import load_dotenv

load_dotenv()

from docs_mcp.src.services.config import get_config  # noqa: E402

logger = logging.getLogger("docs_mcp")


class DocsMcpServer(uvicorn.Server):
    """Uvicorn server that closes MCP connections as soon as a stop signal arrives."""

    def __init__(self, app: FastAPI, config: uvicorn.Config) -> None:
        super().__init__(config)
        self.app = app
        self._loop: asyncio.AbstractEventLoop | None = None

    async def serve(self, sockets=None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().serve(sockets)

    def handle_exit(self, sig, frame) -> None:
        if self._loop is not None and not self.should_exit:
            logger.info("Received signal %s, draining connections", sig)
            self._loop.call_soon_threadsafe(self.app.state.lifecycle.request_shutdown)
        super().handle_exit(sig, frame)


def main() -> None:
    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    from docs_mcp.src.api.main import app

    server = DocsMcpServer(
        app,
        uvicorn.Config(
            app,
            host=config.host,
            port=config.port,
            timeout_graceful_shutdown=max(1, int(config.shutdown_timeout)),
            log_level=config.log_level.lower(),
        ),
    )
    server.run()


if __name__ == "__main__":
    main()
