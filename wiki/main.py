import logging

from fastapi import FastAPI

from wiki.config import WikiConfig, load_config
from wiki.features.auth.api import router as auth_router
from wiki.features.content.service import ContentStore
from wiki.features.pages.api import router as pages_router
from wiki.web.health import router as health_router


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(cfg: WikiConfig | None = None) -> FastAPI:
    cfg = cfg or load_config()
    configure_logging(cfg.log_level)

    app = FastAPI(title="Wiki", version="0.1.0")
    app.state.cfg = cfg
    app.state.store = ContentStore.from_config(cfg)
    app.include_router(health_router)
    app.include_router(pages_router)
    app.include_router(auth_router)
    return app
