from fastapi import FastAPI
import logging

from vnengine.api.routes import router
from vnengine.content.startup import init_content_for_app
from vnengine.sessions import sessions

app = FastAPI(title="vnengine", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    init_content_for_app()


@app.on_event("shutdown")
async def _shutdown() -> None:
    # Engine tasks live on the server loop; stop them before it goes away.
    await sessions.close_all()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "vnengine", "version": "0.1.0"}
