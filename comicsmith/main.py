# comicsmith/main.py
import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from comicsmith import __version__
from comicsmith.agent.controller import build_agent
from comicsmith.agent.session import SessionState
from comicsmith.config import config
from comicsmith.features.chat.router import router as chat_router
from comicsmith.logger import get_logger

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.session = SessionState()
    app.state.chat_lock = asyncio.Lock()
    try:
        app.state.agent = build_agent()
    except Exception:
        # /health reports it; /chat answers 503
        log.exception("agent initialization failed")
        app.state.agent = None
    yield


app = FastAPI(title="Comicsmith API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials="*" not in config.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(chat_router)
