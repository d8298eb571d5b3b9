"""Persistent key-value store and saved-project bookkeeping."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol

from .errors import StoreError
from .models import ProjectSnapshot, StyleEdit, now_ms

logger = logging.getLogger(__name__)

PROJECTS_KEY = "projects"


def edits_key(project_id: str) -> str:
    return f"edits-{project_id}"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterator[str]: ...


class MemoryStore:
    """In-process store, used for scratch sessions and tests."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


class JsonFileStore:
    """Key-value store persisted as a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self._data = {}
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("store: unreadable %s, starting empty", self.path)
            data = {}
        self._data = data if isinstance(data, dict) else {}

    def save(self) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StoreError(f"Could not write {self.path}: {exc}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.save()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.save()

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))


def load_edits(store: KeyValueStore, project_id: str) -> Optional[List[StyleEdit]]:
    """Return the persisted ledger for a project, or None when nothing was saved."""
    raw = store.get(edits_key(project_id))
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("store: malformed ledger for project %s", project_id)
            return []
    if not isinstance(raw, list):
        return []
    return [StyleEdit.from_dict(item) for item in raw if isinstance(item, dict)]


def save_edits(store: KeyValueStore, project_id: str, edits: List[StyleEdit]) -> None:
    store.set(edits_key(project_id), [edit.to_dict() for edit in edits])


class ProjectStore:
    """Saved projects, newest first, with their edit ledgers."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _load(self) -> List[ProjectSnapshot]:
        data = self.store.get(PROJECTS_KEY) or []
        if not isinstance(data, list):
            return []
        return [ProjectSnapshot.from_dict(item) for item in data if isinstance(item, dict)]

    def _write(self, projects: List[ProjectSnapshot]) -> None:
        self.store.set(PROJECTS_KEY, [p.to_dict() for p in projects])

    def list(self) -> List[ProjectSnapshot]:
        return sorted(self._load(), key=lambda p: p.timestamp, reverse=True)

    def get(self, project_id: str) -> Optional[ProjectSnapshot]:
        for project in self._load():
            if project.id == project_id:
                return project
        return None

    def create(self, prompt: str, code: str) -> ProjectSnapshot:
        project = ProjectSnapshot(id=uuid.uuid4().hex, prompt=prompt, code=code)
        self.save(project)
        return project

    def save(self, project: ProjectSnapshot) -> None:
        project.timestamp = now_ms()
        projects = [p for p in self._load() if p.id != project.id]
        projects.append(project)
        self._write(projects)

    def delete(self, project_id: str) -> None:
        projects = [p for p in self._load() if p.id != project_id]
        self._write(projects)
        self.store.delete(edits_key(project_id))
