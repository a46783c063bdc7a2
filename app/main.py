from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app import __version__
from app.core.handlers import add_exception_handlers
from app.db.session import close_db, init_db
from app.modules.auth import api as auth_api
from app.modules.health import api as health_api
from app.modules.orders import api as orders_api


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_db()
    try:
        yield
    finally:
        await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title="campus-eats",
        version=__version__,
        lifespan=lifespan,
        swagger_ui_parameters={"persistAuthorization": True},
    )

    add_exception_handlers(app)

    app.include_router(auth_api.router)
    app.include_router(orders_api.router)
    app.include_router(health_api.router)

    return app


app = create_app()
