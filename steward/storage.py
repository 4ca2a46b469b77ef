from __future__ import annotations
import json, os, tempfile
from pathlib import Path
from typing import Any, Dict, List


def read_json(path: Path) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError):
        return None


def read_json_list(path: Path) -> List[Dict[str, Any]]:
    x = read_json(path)
    return x if isinstance(x, list) else []


def read_json_dict(path: Path) -> Dict[str, Any]:
    x = read_json(path)
    return x if isinstance(x, dict) else {}


def atomic_write_json(path: Path, data: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)
