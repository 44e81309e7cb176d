# comicsmith/features/chat/router.py
import os

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

from comicsmith.config import config
from comicsmith.errors import NotFoundError, ValidationError
from comicsmith.lib.jsonio import append_jsonl
from comicsmith.lib.paths import outputs_dir, prompt_log_path
from comicsmith.logger import get_logger
from comicsmith.schemas import utcnow

from .schemas import ChatRequest, ChatResponse, OutputImage

log = get_logger(__name__)
router = APIRouter(tags=["chat"])

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


def _journal(prompt: str, response: str, session_id: str) -> None:
    if not config.prompt_log:
        return
    try:
        append_jsonl(
            prompt_log_path(),
            {"timestamp": utcnow(), "sessionId": session_id, "prompt": prompt, "response": response},
        )
    except OSError as e:
        log.warning(f"Failed to write prompt journal: {e}")


@router.get("/health")
def health(request: Request):
    agent = getattr(request.app.state, "agent", None)
    return {"status": "ok", "agent": "ready" if agent is not None else "not initialized"}


@router.post("/chat")
async def chat_endpoint(req: ChatRequest, request: Request):
    message = (req.message or "").strip()
    if not message:
        raise HTTPException(400, "Message is required")
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(503, "Agent not initialized")

    session = request.app.state.session
    # one conversation per process: turns are serialized
    async with request.app.state.chat_lock:
        try:
            reply = await agent.respond(message, session)
        except Exception as e:
            log.exception("chat turn failed")
            raise HTTPException(500, f"Chat failed: {e}")
    _journal(message, reply, session.session_id)

    out = ChatResponse(response=reply)
    if session.page_urls:
        out.page_urls = list(session.page_urls)
    elif session.panel_urls:
        out.panel_urls = list(session.panel_urls)
    return out.model_dump(by_alias=True, exclude_none=True)


@router.get("/outputs")
def list_outputs():
    root = outputs_dir()
    images = []
    for folder, _, names in os.walk(root):
        for name in names:
            if os.path.splitext(name)[1].lower() not in IMAGE_EXTENSIONS:
                continue
            rel = os.path.relpath(os.path.join(folder, name), root).replace(os.sep, "/")
            images.append(OutputImage(filename=name, url=f"{config.public_base_url}/outputs/{rel}", path=rel))
    images.sort(key=lambda i: i.path)
    return {"images": [i.to_json_dict() for i in images]}


@router.get("/outputs/{file_path:path}")
def get_output(file_path: str):
    root = os.path.realpath(outputs_dir())
    full = os.path.realpath(os.path.join(root, file_path))
    if not full.startswith(root + os.sep) or not os.path.isfile(full):
        raise HTTPException(404, "File not found")
    return FileResponse(full)


@router.get("/comics/{comic_id}")
def get_comic(comic_id: str, request: Request):
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(503, "Agent not initialized")
    try:
        return agent.store.get_comic(comic_id).to_json_dict()
    except NotFoundError as e:
        raise HTTPException(404, e.message)
    except ValidationError as e:
        raise HTTPException(400, e.message)
