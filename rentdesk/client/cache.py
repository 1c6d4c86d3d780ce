from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

CACHE_SLOT = "apartments_cache"


class CacheStore:
    """
    Durable local copy of the listing set: one JSON document, one fixed slot
    holding an array of listing records. Storage problems never break the
    caller; a bad file loads as empty and a failed write is only logged.
    """

    def __init__(self, path: str | Path, slot: str = CACHE_SLOT):
        self.path = Path(path)
        self.slot = slot

    def load(self) -> list[dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            log.warning("cache: cannot read %s: %s", self.path, e)
            return []

        try:
            doc = json.loads(raw)
        except ValueError:
            log.warning("cache: %s is not valid JSON, starting empty", self.path)
            return []

        items = doc.get(self.slot) if isinstance(doc, dict) else None
        if not isinstance(items, list):
            return []
        return [dict(item) for item in items if isinstance(item, dict)]

    def save(self, listings: list[dict[str, Any]]) -> None:
        doc: dict[str, Any] = {}
        try:
            existing = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(existing, dict):
                doc = existing
        except (OSError, ValueError):
            pass
        doc[self.slot] = listings

        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            log.warning("cache: cannot write %s: %s", self.path, e)
