import uvicorn

from drainmetrics.config import load_settings


def main():
    settings = load_settings()

    uvicorn.run(
        "drainmetrics.drain_app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        log_level="debug" if settings.debug else "info",
    )
