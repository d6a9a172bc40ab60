from fastapi import FastAPI
from contextlib import asynccontextmanager
from hello_server import __version__
from hello_server.routers import hello_router
import logging

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Hello route ready: GET /")
    yield
    # Shutdown
    logger.info("Hello route stopped")

def create_app() -> FastAPI:
    # Only "/" is served; no interactive docs or schema routes
    app = FastAPI(
        title="Hello Server",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(hello_router.router)
    return app

app = create_app()
