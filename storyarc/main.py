from contextlib import asynccontextmanager

from fastapi import FastAPI

from storyarc.config import configure_logging
from storyarc.modules.sessions import service as session_service
from storyarc.modules.sessions.router import router as arc_session_router


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    configure_logging()
    yield
    session_service.reset_arc_sessions()


app = FastAPI(title="Story Arc Engine", lifespan=_lifespan)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(arc_session_router)
