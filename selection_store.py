"""
Key/value persistence for the viewer's selections and user-added nodes.

The graph service only needs "get/set a string by key".  Two backends are
provided: an in-memory dict and a single JSON file on disk.  Values are JSON
strings; a corrupt value is logged and read as empty.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SELECTED_IDS_KEY = 'user_selected_ids'
CUSTOM_NODES_KEY = 'user_custom_nodes'


class KeyValueStore:
    """Interface: string values addressed by string keys."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """All keys in one JSON object, rewritten on every ``set``."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Could not read store file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            tmp_path = f'{self.path}.tmp'
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)


class SelectionStore:
    """
    Selected node ids and user-added node records on top of a KeyValueStore.

    Every read-modify-write of a stored list runs under one lock.
    """

    def __init__(self, backend: Optional[KeyValueStore] = None):
        self.backend = backend or MemoryKeyValueStore()
        self._lock = threading.Lock()

    def _load_list(self, key: str) -> List[Any]:
        raw = self.backend.get(key)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning(f"Stored value for '{key}' is not valid JSON; ignoring it")
            return []
        if not isinstance(value, list):
            logger.warning(f"Stored value for '{key}' is not a list; ignoring it")
            return []
        return value

    def _save_list(self, key: str, value: List[Any]) -> None:
        self.backend.set(key, json.dumps(value, ensure_ascii=False))

    # -- selections ---------------------------------------------------------

    def selected_ids(self) -> List[str]:
        return [v for v in self._load_list(SELECTED_IDS_KEY) if isinstance(v, str)]

    def set_selected_ids(self, ids: List[str]) -> List[str]:
        unique = list(dict.fromkeys(i for i in ids if isinstance(i, str)))
        with self._lock:
            self._save_list(SELECTED_IDS_KEY, unique)
        return unique

    def toggle(self, node_id: str) -> bool:
        """Flip the selection of *node_id*; returns True when now selected."""
        with self._lock:
            ids = self.selected_ids()
            if node_id in ids:
                ids.remove(node_id)
                selected = False
            else:
                ids.append(node_id)
                selected = True
            self._save_list(SELECTED_IDS_KEY, ids)
        return selected

    def deselect(self, node_ids) -> None:
        with self._lock:
            ids = [i for i in self.selected_ids() if i not in node_ids]
            self._save_list(SELECTED_IDS_KEY, ids)

    # -- user-added nodes ---------------------------------------------------

    def custom_nodes(self) -> List[Dict[str, Any]]:
        """Records ``{'id', 'label', 'type', 'parent_id'}`` in insertion order."""
        return [
            r for r in self._load_list(CUSTOM_NODES_KEY)
            if isinstance(r, dict) and r.get('id') and r.get('label')
        ]

    def add_custom_node_record(self, record: Dict[str, Any]) -> None:
        with self._lock:
            records = [r for r in self.custom_nodes() if r['id'] != record['id']]
            records.append(record)
            self._save_list(CUSTOM_NODES_KEY, records)

    def remove_custom_nodes(self, node_ids) -> None:
        with self._lock:
            records = [r for r in self.custom_nodes() if r['id'] not in node_ids]
            self._save_list(CUSTOM_NODES_KEY, records)
