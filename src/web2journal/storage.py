"""JSON persistence for content patterns and the auth token.

A missing file is never an error: no patterns file means an empty pattern
set, and no token file means a token is generated and saved.
"""

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Optional

from .exceptions import StorageError
from .models import ContentPattern, format_timestamp, utc_now
from .patterns import PatternStore

logger = logging.getLogger(__name__)

PATTERNS_FILENAME = "content-patterns.json"
TOKEN_FILENAME = "auth-token.json"


def _write_json(path: Path, data) -> None:
    """Write JSON atomically so readers never see a half-written file."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as e:
        raise StorageError(f"Could not write {path}: {e}") from e


def _read_json(path: Path):
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StorageError(f"Corrupt JSON in {path}: {e}") from e


class PatternStorage:
    """Reads and writes the ordered pattern list."""

    def __init__(self, data_path: Path):
        self.path = Path(data_path) / PATTERNS_FILENAME
        self._loaded_mtime: Optional[float] = None

    def _mtime(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def _read_patterns(self) -> list[ContentPattern]:
        data = _read_json(self.path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError(f"Expected a list of patterns in {self.path}")
        patterns = []
        for item in data:
            try:
                patterns.append(ContentPattern.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed pattern record in %s: %s", self.path, e)
        return patterns

    def load(self) -> PatternStore:
        mtime = self._mtime()
        store = PatternStore(self._read_patterns())
        self._loaded_mtime = mtime
        logger.debug("Loaded %d pattern(s) from %s", len(store), self.path)
        return store

    def save(self, store: PatternStore) -> None:
        _write_json(self.path, [p.to_dict() for p in store.all()])
        self._loaded_mtime = self._mtime()

    def refresh(self, store: PatternStore) -> bool:
        """Reload store contents if the file changed since the last load or save.

        Returns True when the store was replaced.
        """
        mtime = self._mtime()
        if mtime == self._loaded_mtime:
            return False
        store.replace_all(self._read_patterns())
        self._loaded_mtime = mtime
        logger.info("Reloaded %d pattern(s) from %s", len(store), self.path)
        return True


class TokenStorage:
    """Holds the single shared secret for the extension/server channel."""

    def __init__(self, data_path: Path):
        self.path = Path(data_path) / TOKEN_FILENAME

    def load_token(self) -> Optional[str]:
        try:
            data = _read_json(self.path)
        except StorageError as e:
            logger.warning("%s", e)
            return None
        if isinstance(data, dict):
            token = data.get("token")
            if isinstance(token, str) and token:
                return token
        return None

    def save_token(self, token: str) -> None:
        _write_json(self.path, {
            "token": token,
            "createdAt": format_timestamp(utc_now()),
        })
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.debug("Could not restrict permissions on %s: %s", self.path, e)

    @staticmethod
    def generate_token() -> str:
        return secrets.token_urlsafe(32)

    def get_or_create_token(self) -> str:
        token = self.load_token()
        if token:
            return token
        token = self.generate_token()
        self.save_token(token)
        logger.info("Generated new auth token at %s", self.path)
        return token

    def rotate_token(self) -> str:
        token = self.generate_token()
        self.save_token(token)
        logger.info("Rotated auth token at %s", self.path)
        return token
