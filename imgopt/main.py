import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .api.optimize import router as optimize_router
from .api.ops import router as ops_router
from .api.routes_health import router as health_router
from .core.config import settings
from .core.ops_log import install_ops_log

logger = logging.getLogger(__name__)

app = FastAPI(title="Image Optimizer", description="On-demand image resizing with a disk cache")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

install_ops_log(settings.LOG_LEVEL)

app.include_router(health_router)
app.include_router(ops_router)
app.include_router(optimize_router)


@app.api_route("/{full_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
async def not_found(full_path: str) -> PlainTextResponse:
    return PlainTextResponse("Page not found", status_code=404)


def run() -> None:
    import uvicorn

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.info("Server started at http://%s:%s", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
