import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import config_dir

OUTBOX_FILE = "outbox.jsonl"


def _dir(base: Optional[Path] = None) -> Path:
    d = base or config_dir()
    d.mkdir(parents=True, exist_ok=True)
    return d


def append_jsonl(name: str, item: Dict[str, Any], base: Optional[Path] = None) -> None:
    path = _dir(base) / name
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(item, sort_keys=True, default=str) + "\n")


def read_jsonl(name: str, base: Optional[Path] = None) -> List[Dict[str, Any]]:
    path = _dir(base) / name
    if not path.exists():
        return []
    out: List[Dict[str, Any]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line:
            out.append(json.loads(line))
    return out
