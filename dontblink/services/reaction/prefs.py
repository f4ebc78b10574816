import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


class PrefsStore:
    """Per-player scalars kept across sessions: best average, last name, history.

    Backed by a JSON file when `path` is given, otherwise by a dict.
    Missing or unreadable values read as absent; nothing here raises
    into the game. One store is shared by every session, so each
    read-modify-write runs under the store lock and the file is replaced
    atomically.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or None
        self._memory: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    # ---- raw load/save ----
    def _load(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            if not self.path:
                return self._memory
            if not os.path.exists(self.path):
                return {}
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as exc:
                logger.warning(f"[prefs-corrupt] path={self.path} error={exc}")
                return {}
            return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Dict[str, Any]]) -> None:
        if not self.path:
            self._memory = data
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.prefs-', suffix='.json')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as exc:
            logger.warning(f"[prefs-write] path={self.path} error={exc}")
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _player(self, key: str) -> Dict[str, Any]:
        record = self._load().get(key)
        return record if isinstance(record, dict) else {}

    def _update(self, key: str, **values) -> None:
        with self._lock:
            data = self._load()
            record = data.get(key)
            if not isinstance(record, dict):
                record = {}
            record.update(values)
            data[key] = record
            self._save(data)

    # ---- best score ----
    def get_best(self, key: str) -> Optional[int]:
        value = self._player(key).get('best')
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def record_best(self, key: str, score: int) -> bool:
        """Store `score` if it beats the saved best. Returns True when it did."""
        with self._lock:
            best = self.get_best(key)
            if best is not None and score >= best:
                return False
            self._update(key, best=int(score))
            return True

    # ---- player name ----
    def get_name(self, key: str) -> Optional[str]:
        value = self._player(key).get('name')
        if isinstance(value, str) and value.strip():
            return value
        return None

    def set_name(self, key: str, name: str) -> None:
        name = (name or '').strip()
        if name:
            self._update(key, name=name)

    # ---- history ----
    def history(self, key: str, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        items = self._player(key).get('history')
        if not isinstance(items, list):
            return []
        return [h for h in items if isinstance(h, dict)][:limit]

    def add_history(self, key: str, name: str, score: int) -> None:
        entry = {
            'name': name,
            'score': int(score),
            'date': datetime.now(timezone.utc).strftime('%b %d'),
        }
        with self._lock:
            items = [entry] + self.history(key)
            self._update(key, history=items[:HISTORY_LIMIT])
