import json
import os
from pathlib import Path
from typing import Any

from .errors import ParsingError


def load_json(path: str | Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        raise ParsingError(f"Invalid UTF-8 in {path}: {e}", original=e) from e
    except json.JSONDecodeError as e:
        raise ParsingError(f"Invalid JSON in {path}: {e}", original=e) from e


def atomic_write_json(path: str | Path, data: Any) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(f"{target.suffix}.tmp")
    payload = json.dumps(data, indent=2, ensure_ascii=False)
    with open(tmp_path, "w", encoding="utf-8") as handle:
        handle.write(payload)
    os.replace(tmp_path, target)
