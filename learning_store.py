"""
Storage backends for paths, progress records and goals.
The service only talks to the LearningStore interface; InMemoryStore is the
default, JsonFileStore keeps one pydantic JSON document per record.
"""

import logging
import os
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from learning_model import LearningGoal, LearningPath, LearningProgress

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

STORE_BACKEND = os.getenv("LEARNING_PATH_STORE", "memory")
DATA_DIR = Path(os.getenv("LEARNING_PATH_DATA_DIR", str(Path.home() / ".learning_paths")))

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class LearningStore(ABC):
    """Repository for the engine's three tables. Reads return copies."""

    @abstractmethod
    def get_path(self, path_id: str) -> Optional[LearningPath]: ...

    @abstractmethod
    def list_paths(self) -> list[LearningPath]: ...

    @abstractmethod
    def save_path(self, path: LearningPath) -> None: ...

    @abstractmethod
    def delete_path(self, path_id: str) -> bool: ...

    @abstractmethod
    def get_progress(self, user_id: str, path_id: str) -> Optional[LearningProgress]: ...

    @abstractmethod
    def list_progress(
        self, user_id: Optional[str] = None, path_id: Optional[str] = None
    ) -> list[LearningProgress]: ...

    @abstractmethod
    def save_progress(self, progress: LearningProgress) -> None: ...

    @abstractmethod
    def delete_progress_for_path(self, path_id: str) -> int: ...

    @abstractmethod
    def get_goal(self, goal_id: str) -> Optional[LearningGoal]: ...

    @abstractmethod
    def list_goals(self) -> list[LearningGoal]: ...

    @abstractmethod
    def save_goal(self, goal: LearningGoal) -> None: ...

    @abstractmethod
    def delete_goal(self, goal_id: str) -> bool: ...


class InMemoryStore(LearningStore):
    """Dict-backed tables. One lock guards all three, so callers working on
    different paths can share the store without coordinating."""

    def __init__(self):
        self._lock = threading.RLock()
        self._paths: dict[str, LearningPath] = {}
        self._progress: dict[tuple[str, str], LearningProgress] = {}
        self._goals: dict[str, LearningGoal] = {}

    def get_path(self, path_id):
        with self._lock:
            path = self._paths.get(path_id)
            return path.model_copy(deep=True) if path else None

    def list_paths(self):
        with self._lock:
            return [p.model_copy(deep=True) for p in self._paths.values()]

    def save_path(self, path):
        with self._lock:
            self._paths[path.id] = path.model_copy(deep=True)

    def delete_path(self, path_id):
        with self._lock:
            return self._paths.pop(path_id, None) is not None

    def get_progress(self, user_id, path_id):
        with self._lock:
            progress = self._progress.get((user_id, path_id))
            return progress.model_copy(deep=True) if progress else None

    def list_progress(self, user_id=None, path_id=None):
        with self._lock:
            return [
                p.model_copy(deep=True)
                for p in self._progress.values()
                if (user_id is None or p.user_id == user_id)
                and (path_id is None or p.path_id == path_id)
            ]

    def save_progress(self, progress):
        with self._lock:
            self._progress[(progress.user_id, progress.path_id)] = progress.model_copy(deep=True)

    def delete_progress_for_path(self, path_id):
        with self._lock:
            keys = [key for key in self._progress if key[1] == path_id]
            for key in keys:
                del self._progress[key]
            return len(keys)

    def get_goal(self, goal_id):
        with self._lock:
            goal = self._goals.get(goal_id)
            return goal.model_copy(deep=True) if goal else None

    def list_goals(self):
        with self._lock:
            return [g.model_copy(deep=True) for g in self._goals.values()]

    def save_goal(self, goal):
        with self._lock:
            self._goals[goal.id] = goal.model_copy(deep=True)

    def delete_goal(self, goal_id):
        with self._lock:
            return self._goals.pop(goal_id, None) is not None


class PathProgressBook(BaseModel):
    """All learners' progress on one path, stored as a single document."""

    path_id: str
    records: dict[str, LearningProgress] = Field(default_factory=dict)  # user id -> progress


class JsonFileStore(LearningStore):
    """
    One JSON document per path, per path's progress book and per goal:

        <data_dir>/paths/<path_id>.json
        <data_dir>/progress/<path_id>.json
        <data_dir>/goals/<goal_id>.json

    Ids that are not plain file names are treated as unknown.
    """

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        for sub in ("paths", "progress", "goals"):
            (self.data_dir / sub).mkdir(parents=True, exist_ok=True)

    def _file(self, kind: str, record_id: str) -> Optional[Path]:
        if not _SAFE_ID.match(record_id) or record_id.startswith("."):
            logger.warning(f"Rejected unsafe {kind} id: {record_id!r}")
            return None
        return self.data_dir / kind / f"{record_id}.json"

    def _write(self, file: Path, model: BaseModel) -> None:
        tmp = file.with_suffix(".json.tmp")
        tmp.write_text(model.model_dump_json(indent=2))
        os.replace(tmp, file)

    def _read(self, file: Optional[Path], model_cls):
        """Load one document; None when it is missing or was deleted meanwhile."""
        if file is None:
            return None
        try:
            return model_cls.model_validate_json(file.read_text())
        except FileNotFoundError:
            return None

    def _read_all(self, kind: str, model_cls) -> list:
        records = (self._read(f, model_cls) for f in sorted((self.data_dir / kind).glob("*.json")))
        return [r for r in records if r is not None]

    def _load_book(self, path_id: str) -> PathProgressBook:
        book = self._read(self._file("progress", path_id), PathProgressBook)
        return book if book is not None else PathProgressBook(path_id=path_id)

    # -- paths --

    def get_path(self, path_id):
        return self._read(self._file("paths", path_id), LearningPath)

    def list_paths(self):
        return sorted(self._read_all("paths", LearningPath), key=lambda p: p.created_at)

    def save_path(self, path):
        file = self._file("paths", path.id)
        if file is None:
            raise ValueError(f"Cannot store path with id {path.id!r}")
        self._write(file, path)

    def delete_path(self, path_id):
        file = self._file("paths", path_id)
        if file is None or not file.exists():
            return False
        file.unlink()
        return True

    # -- progress --

    def get_progress(self, user_id, path_id):
        return self._load_book(path_id).records.get(user_id)

    def list_progress(self, user_id=None, path_id=None):
        if path_id is not None:
            books = [self._load_book(path_id)]
        else:
            books = self._read_all("progress", PathProgressBook)
        return [
            record
            for book in books
            for record in book.records.values()
            if user_id is None or record.user_id == user_id
        ]

    def save_progress(self, progress):
        file = self._file("progress", progress.path_id)
        if file is None:
            raise ValueError(f"Cannot store progress for path {progress.path_id!r}")
        book = self._load_book(progress.path_id)
        book.records[progress.user_id] = progress
        self._write(file, book)

    def delete_progress_for_path(self, path_id):
        file = self._file("progress", path_id)
        if file is None or not file.exists():
            return 0
        count = len(self._load_book(path_id).records)
        file.unlink()
        return count

    # -- goals --

    def get_goal(self, goal_id):
        return self._read(self._file("goals", goal_id), LearningGoal)

    def list_goals(self):
        return sorted(self._read_all("goals", LearningGoal), key=lambda g: g.created_at)

    def save_goal(self, goal):
        file = self._file("goals", goal.id)
        if file is None:
            raise ValueError(f"Cannot store goal with id {goal.id!r}")
        self._write(file, goal)

    def delete_goal(self, goal_id):
        file = self._file("goals", goal_id)
        if file is None or not file.exists():
            return False
        file.unlink()
        return True


def create_store(backend: str = STORE_BACKEND, data_dir: Path = DATA_DIR) -> LearningStore:
    if backend == "json":
        logger.info(f"Using JSON file store at {data_dir}")
        return JsonFileStore(data_dir)
    if backend != "memory":
        raise ValueError(f"Unknown store backend '{backend}' (expected 'memory' or 'json')")
    return InMemoryStore()
