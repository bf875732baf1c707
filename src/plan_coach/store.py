"""
Document store adapters and the three logical coach documents.

The store contract is deliberately small: ``get`` returns ``{}`` for missing
documents, ``set`` merges into what is already there, ``delete`` removes.
"""

from __future__ import annotations

import copy
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

CURRICULUM_PATH = "curriculum/main"


def progress_path(user_id: str) -> str:
    return f"userProgress/{user_id}"


def conversation_path(user_id: str) -> str:
    return f"coachConversations/{user_id}"


def merge_documents(existing: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge ``update`` into a copy of ``existing``.

    Nested mappings merge key by key; lists and scalars are replaced.
    """

    merged = copy.deepcopy(existing)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class DocumentStore:
    """
    Key-value document store with get / set-merge / delete semantics.
    """

    def get(self, path: str) -> Dict[str, Any]:
        raise NotImplementedError

    def set(self, path: str, data: Dict[str, Any], merge: bool = True) -> None:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store used by tests and throwaway sessions."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._documents: Dict[str, Dict[str, Any]] = copy.deepcopy(documents or {})

    def get(self, path: str) -> Dict[str, Any]:
        return copy.deepcopy(self._documents.get(path, {}))

    def set(self, path: str, data: Dict[str, Any], merge: bool = True) -> None:
        existing = self._documents.get(path, {}) if merge else {}
        self._documents[path] = merge_documents(existing, data)

    def delete(self, path: str) -> None:
        self._documents.pop(path, None)

    def paths(self) -> Iterable[str]:
        return list(self._documents.keys())


class JsonFileDocumentStore(DocumentStore):
    """
    One JSON file per document: ``curriculum/main`` lives at ``<root>/curriculum/main.json``.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _file_for(self, path: str) -> Path:
        parts = [part for part in path.split("/") if part not in ("", ".", "..")]
        if not parts:
            raise ValueError(f"Invalid document path: {path!r}")
        *parents, name = parts
        return self.root.joinpath(*parents, f"{name}.json")

    def get(self, path: str) -> Dict[str, Any]:
        file_path = self._file_for(path)
        if not file_path.exists():
            return {}
        with file_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        return data if isinstance(data, dict) else {}

    def set(self, path: str, data: Dict[str, Any], merge: bool = True) -> None:
        file_path = self._file_for(path)
        existing = self.get(path) if merge else {}
        merged = merge_documents(existing, data)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = file_path.with_name(file_path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(merged, handle, indent=2, ensure_ascii=False)
        tmp_path.replace(file_path)
        logger.debug("Wrote document %s to %s", path, file_path)

    def delete(self, path: str) -> None:
        file_path = self._file_for(path)
        if file_path.exists():
            file_path.unlink()


def now_millis() -> int:
    return int(time.time() * 1000)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CoachDocuments:
    """
    Typed access to ``curriculum/main``, ``userProgress/<id>`` and ``coachConversations/<id>``.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def fetch_curriculum(self) -> Dict[str, Any]:
        data = self.store.get(CURRICULUM_PATH)
        phases = data.get("phases")
        return {"phases": phases if isinstance(phases, list) else []}

    def fetch_progress(self, user_id: str) -> Dict[str, Any]:
        return self.store.get(progress_path(user_id))

    def fetch_conversation(self, user_id: str) -> List[Dict[str, Any]]:
        messages = self.store.get(conversation_path(user_id)).get("messages")
        return [m for m in messages if isinstance(m, dict)] if isinstance(messages, list) else []

    def save_conversation(self, user_id: str, messages: List[Dict[str, Any]]) -> None:
        self.store.set(
            conversation_path(user_id),
            {"messages": messages, "updatedAt": now_millis()},
            merge=True,
        )

    def clear_conversation(self, user_id: str) -> None:
        self.store.delete(conversation_path(user_id))

    def persist_progress(
        self,
        user_id: str,
        task_progress: Dict[str, Dict[str, Any]],
        hours_per_week_target: Optional[float] = None,
        focus_areas: Optional[List[str]] = None,
    ) -> None:
        payload: Dict[str, Any] = {"taskProgress": task_progress, "updatedAt": _iso_now()}
        if hours_per_week_target is not None:
            payload["hoursPerWeekTarget"] = hours_per_week_target
        if focus_areas is not None:
            payload["focusAreas"] = focus_areas
        self.store.set(progress_path(user_id), payload, merge=True)

    def persist_curriculum(self, curriculum: Dict[str, Any]) -> None:
        self.store.set(
            CURRICULUM_PATH,
            {"phases": curriculum.get("phases", []), "lastUpdated": _iso_now()},
            merge=True,
        )
