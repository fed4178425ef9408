"""File-based storage implementation."""

import json
import os
import re

from core.interfaces import KeyValueBackend, StorageError

_SAFE_KEY_RE = re.compile(r'^[A-Za-z0-9_.-]+$')


class FileBackend(KeyValueBackend):
    """One JSON file per key inside a state directory."""

    def __init__(self, state_dir: str = None):
        self.state_dir = state_dir or os.path.expanduser('~/.local/share/spanish-rain')

    def _get_key_file(self, key: str) -> str:
        """Get the file path for a key."""
        if not _SAFE_KEY_RE.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return os.path.join(self.state_dir, f'{key}.json')

    def get(self, key: str):
        key_file = self._get_key_file(key)
        if not os.path.exists(key_file):
            return None
        try:
            with open(key_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {key_file}: {e}") from e

    def set(self, key: str, value) -> None:
        key_file = self._get_key_file(key)
        tmp_file = key_file + '.tmp'
        try:
            os.makedirs(self.state_dir, exist_ok=True)
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_file, key_file)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Could not write {key_file}: {e}") from e

    def delete(self, key: str) -> None:
        key_file = self._get_key_file(key)
        if os.path.exists(key_file):
            os.remove(key_file)

    def list_keys(self) -> list[str]:
        """List all stored keys."""
        keys = []
        if os.path.exists(self.state_dir):
            for filename in os.listdir(self.state_dir):
                if filename.endswith('.json'):
                    keys.append(filename[:-5])
        return sorted(keys)
