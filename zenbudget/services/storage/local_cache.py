"""
Local Document Cache

Keeps the last known budget document of each user on disk, one JSON file
per user:

    .zenbudget_cache/{user_id}.json

The cache is written on every edit, before the debounced remote write,
so a closed tab or a lost connection never loses the latest numbers.
It implements StateStorageInterface and stands in for the remote store
when Google Sheets is unreachable.
"""

import json
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from zenbudget.models.budget import BudgetState
from zenbudget.services.storage.interface import StateStorageInterface, StorageError
from zenbudget.state.mutations import merge_remote


SCHEMA_VERSION = 1

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.@-]")


class LocalStateCache(StateStorageInterface):
    """File-backed budget document store."""

    def __init__(self, directory: Union[str, Path] = ".zenbudget_cache"):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, user_id: str) -> Path:
        if not user_id:
            raise ValueError("user_id must not be empty")
        safe = _UNSAFE_CHARS.sub("_", user_id)
        return self._directory / f"{safe}.json"

    async def load_state(self, user_id: str) -> Optional[BudgetState]:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return merge_remote(data.get("state", {}))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read cached document {path}: {e}")

    async def save_state(self, user_id: str, state: BudgetState) -> bool:
        path = self.path_for(user_id)
        tmp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({
                    "saved_at": datetime.utcnow().isoformat(),
                    "schema_version": SCHEMA_VERSION,
                    "state": state.to_document(),
                }, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)  # atomic replacement
        except OSError as e:
            raise StorageError(f"Failed to write cached document {path}: {e}")
        return True

    def clear(self, user_id: str) -> None:
        """Forget the cached document of a user (e.g. on sign-out)."""
        self.path_for(user_id).unlink(missing_ok=True)
