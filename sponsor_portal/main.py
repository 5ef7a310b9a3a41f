from prometheus_fastapi_instrumentator import Instrumentator

from sponsor_portal.core.config import settings
from sponsor_portal.core.logging import configure_logging
from . import app as portal_app

configure_logging()
app = portal_app
instrumentator = Instrumentator(excluded_handlers=["/health", "/metrics"])
instrumentator.instrument(app).expose(app, include_in_schema=False)


def run() -> None:
    import uvicorn

    uvicorn.run("sponsor_portal.main:app", host=settings.HOST, port=settings.PORT, log_config=None)
