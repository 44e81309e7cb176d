# comicsmith/config.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

_PKG_ROOT = Path(__file__).resolve().parent

def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}

def _env_csv(name: str, default: str = "*") -> List[str]:
    raw = os.getenv(name, default)
    return [x.strip() for x in raw.split(",") if x.strip()]

def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)

@dataclass(frozen=True)
class Config:
    # OpenAI (text + vision)
    openai_api_key: str
    openai_text_model: str
    openai_vision_model: str
    # Leonardo (image generation)
    leonardo_api_key: str
    leonardo_api_url: str
    leonardo_model_id: str
    leonardo_style_uuid: str
    poll_interval_seconds: float
    poll_max_attempts: int
    # Assets
    asset_backend: str          # "local" or "gcs"
    gcs_bucket: str
    public_base_url: str
    # Storage
    data_dir: Path
    outputs_dir: Path
    memory_path: Path
    # Agent
    tool_timeout_seconds: float
    history_limit: int
    # API / CORS
    allowed_origins: List[str]
    port: int
    frontend_url: str
    prompt_log: bool
    # Logging
    log_level: str

def load_config() -> Config:
    data_dir = Path(os.getenv("DATA_DIR", str(_PKG_ROOT.parent / "data")))
    port = int(os.getenv("PORT", "8000"))
    return Config(
        openai_api_key = os.getenv("OPENAI_API_KEY", ""),
        openai_text_model = os.getenv("OPENAI_TEXT_MODEL", "gpt-4o-mini"),
        openai_vision_model = os.getenv("OPENAI_VISION_MODEL", "gpt-4o"),
        leonardo_api_key = os.getenv("LEONARDO_API_KEY", ""),
        leonardo_api_url = os.getenv("LEONARDO_API_URL", "https://cloud.leonardo.ai/api/rest/v1").rstrip("/"),
        leonardo_model_id = os.getenv("LEONARDO_MODEL_ID", "de7d3faf-762f-48e0-b3b7-9d0ac3a3fcf3"),
        leonardo_style_uuid = os.getenv("LEONARDO_STYLE_UUID", ""),
        poll_interval_seconds = _env_float("POLL_INTERVAL_SECONDS", 3.0),
        poll_max_attempts = int(os.getenv("POLL_MAX_ATTEMPTS", "40")),
        asset_backend = os.getenv("ASSET_BACKEND", "local").strip().lower(),
        gcs_bucket = os.getenv("GCS_BUCKET", ""),
        public_base_url = os.getenv("PUBLIC_BASE_URL", f"http://localhost:{port}").rstrip("/"),
        data_dir = data_dir,
        outputs_dir = Path(os.getenv("OUTPUTS_DIR", str(_PKG_ROOT.parent / "outputs"))),
        memory_path = Path(os.getenv("MEMORY_PATH", str(data_dir / "memory.json"))),
        tool_timeout_seconds = _env_float("TOOL_TIMEOUT_SECONDS", 300.0),
        history_limit = int(os.getenv("HISTORY_LIMIT", "10")),
        allowed_origins = _env_csv("ALLOWED_ORIGINS", "*"),
        port = port,
        frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000"),
        prompt_log = _env_bool("PROMPT_LOG", True),
        log_level = os.getenv("LOG_LEVEL", "INFO"),
    )

# Load once and ensure storage directories exist
config = load_config()
config.data_dir.mkdir(parents=True, exist_ok=True)
config.outputs_dir.mkdir(parents=True, exist_ok=True)
