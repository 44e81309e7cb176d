# comicsmith/lib/leonardo_client.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

import requests

from comicsmith.config import config
from comicsmith.errors import GenerationFailed, GenerationTimeout
from comicsmith.lib import pacing
from comicsmith.logger import get_logger

log = get_logger(__name__)

JobStatus = Literal["pending", "complete", "failed"]


@dataclass(frozen=True)
class ContextImage:
    kind: Literal["UPLOADED", "GENERATED"]
    id: str

    def to_wire(self) -> Dict[str, str]:
        return {"type": self.kind, "id": self.id}


@dataclass
class GenerationRequest:
    prompt: str
    width: int
    height: int
    seed: int
    context_images: List[ContextImage] = field(default_factory=list)
    style_id: Optional[str] = None
    model_id: Optional[str] = None


@dataclass(frozen=True)
class PollResult:
    status: JobStatus
    image_url: Optional[str] = None
    external_image_id: Optional[str] = None


class LeonardoClient:
    """
    Submit-and-poll client for the Leonardo generations REST API.
    Knows nothing about panels or characters: context references are forwarded literally.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        model_id: str = "",
        style_uuid: str = "",
        poll_interval: float = 3.0,
        max_polls: int = 40,
        request_timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.style_uuid = style_uuid
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.request_timeout = request_timeout

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "authorization": f"Bearer {self.api_key}",
        }

    def _check(self, resp: requests.Response) -> Dict[str, Any]:
        if resp.status_code in (401, 403):
            raise GenerationFailed(f"Leonardo unauthorized ({resp.status_code}): check the API key")
        if resp.status_code == 429:
            raise GenerationFailed("Leonardo rate limit exceeded (429)")
        if resp.status_code >= 400:
            raise GenerationFailed(f"Leonardo HTTP {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    def build_body(self, req: GenerationRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "prompt": req.prompt,
            "modelId": req.model_id or self.model_id,
            "width": req.width,
            "height": req.height,
            "num_images": 1,
            "enhancePrompt": True,
            "seed": req.seed,
            "contrastRatio": 0.5,
        }
        style = req.style_id or self.style_uuid
        if style:
            body["styleUUID"] = style
        if req.context_images:
            body["contextImages"] = [c.to_wire() for c in req.context_images]
        return body

    def submit(self, req: GenerationRequest) -> str:
        try:
            resp = requests.post(
                f"{self.base_url}/generations",
                json=self.build_body(req),
                headers=self._headers,
                timeout=self.request_timeout,
            )
        except requests.Timeout as e:
            raise GenerationTimeout(f"Leonardo submit timed out: {e}") from e
        data = self._check(resp)
        job_id = (data.get("sdGenerationJob") or {}).get("generationId")
        if not job_id:
            raise GenerationFailed(f"Leonardo returned no generationId: {str(data)[:200]}")
        return job_id

    def poll(self, job_id: str) -> PollResult:
        try:
            resp = requests.get(
                f"{self.base_url}/generations/{job_id}",
                headers=self._headers,
                timeout=self.request_timeout,
            )
        except requests.Timeout as e:
            raise GenerationTimeout(f"Leonardo poll timed out: {e}") from e
        gen = self._check(resp).get("generations_by_pk") or {}
        status = (gen.get("status") or "PENDING").upper()
        if status == "COMPLETE":
            images = gen.get("generated_images") or []
            if not images:
                return PollResult(status="failed")
            return PollResult(status="complete", image_url=images[0].get("url"), external_image_id=images[0].get("id"))
        if status == "FAILED":
            return PollResult(status="failed")
        return PollResult(status="pending")

    async def generate(self, req: GenerationRequest, *, label: str = "image") -> PollResult:
        """Submit then poll every `poll_interval` seconds, at most `max_polls` times."""
        log.info(f"[{label}] submitting with {len(req.context_images)} context images, seed {req.seed}")
        job_id = await asyncio.to_thread(self.submit, req)
        for attempt in range(1, self.max_polls + 1):
            await pacing.pause(self.poll_interval)
            result = await asyncio.to_thread(self.poll, job_id)
            if result.status == "complete":
                log.info(f"[{label}] complete after {attempt} polls")
                return result
            if result.status == "failed":
                raise GenerationFailed(f"[{label}] generation {job_id} failed")
            if attempt % 5 == 0:
                log.info(f"[{label}] still generating ({attempt}/{self.max_polls})")
        raise GenerationTimeout(f"[{label}] generation {job_id} timed out after {self.max_polls} polls")


client = LeonardoClient(
    config.leonardo_api_key,
    config.leonardo_api_url,
    model_id=config.leonardo_model_id,
    style_uuid=config.leonardo_style_uuid,
    poll_interval=config.poll_interval_seconds,
    max_polls=config.poll_max_attempts,
)
