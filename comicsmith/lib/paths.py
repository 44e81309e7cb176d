# comicsmith/lib/paths.py
from __future__ import annotations
from pathlib import Path
from comicsmith.config import config

def data_dir() -> str:
    """
    Root folder for persisted documents: DATA_DIR (defaults to ./data)
    Ensures it exists and returns it as a string.
    """
    root = Path(config.data_dir)
    root.mkdir(parents=True, exist_ok=True)
    return str(root)

def comics_dir(base: str | None = None) -> str:
    """
    Folder holding one JSON document per comic: <data_dir>/comics
    """
    cd = Path(base or data_dir()) / "comics"
    cd.mkdir(parents=True, exist_ok=True)
    return str(cd)

def outputs_dir() -> str:
    root = Path(config.outputs_dir)
    root.mkdir(parents=True, exist_ok=True)
    return str(root)

def prompt_log_path() -> str:
    return str(Path(data_dir()) / "prompts.jsonl")
