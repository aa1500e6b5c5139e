from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_synchronizer
from api.routes.articles import router as articles_router
from api.routes.editor import router as editor_router
from api.routes.queue import router as queue_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    synchronizer = get_synchronizer()
    synchronizer.restore()
    synchronizer.attach()
    try:
        yield
    finally:
        synchronizer.close()


def create_app() -> FastAPI:
    app = FastAPI(title="Annotated Reader API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(articles_router)
    app.include_router(editor_router)
    app.include_router(queue_router)

    @app.get("/healthz")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
