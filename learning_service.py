"""
Learning path service.
Composes the builder, progress engine and catalog over a LearningStore.
Every multi-record write on a path happens under that path's lock.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from catalog import ACHIEVEMENT_RULES, compute_learning_stats, search_paths
from learning_errors import InvalidInputError, NotFoundError
from learning_model import (
    DifficultyTier,
    LearningGoal,
    LearningPath,
    LearningProgress,
    LearningRecommendation,
    LearningStats,
    LearningStep,
    PathDraft,
    PathUpdate,
    SearchFilters,
    TopicPreferences,
)
from learning_store import InMemoryStore, LearningStore
from path_builder import (
    build_path_from_draft,
    generate_learning_path,
    generate_path,
)
from progress_engine import (
    compute_next_steps,
    compute_recommendations,
    new_progress,
    record_completion,
    refresh_path_stats,
)

logger = logging.getLogger(__name__)


def _coerce(model_cls, value):
    """Accept either a model instance or a plain dict from a transport layer."""
    if value is None or isinstance(value, model_cls):
        return value
    try:
        return model_cls.model_validate(value)
    except ValidationError as e:
        raise InvalidInputError(
            f"Invalid {model_cls.__name__}: {e.error_count()} validation error(s)",
            {"errors": e.errors(include_url=False)},
        ) from e


class LearningPathService:
    def __init__(self, store: Optional[LearningStore] = None, achievement_rules=None):
        self.store = store if store is not None else InMemoryStore()
        self.achievement_rules = achievement_rules or ACHIEVEMENT_RULES
        self._registry_lock = threading.Lock()
        self._path_locks: dict[str, threading.RLock] = {}
        self._goal_lock = threading.RLock()

    @contextmanager
    def _locked(self, path_id: str):
        with self._registry_lock:
            lock = self._path_locks.setdefault(path_id, threading.RLock())
        with lock:
            yield

    def _require_path(self, path_id: str) -> LearningPath:
        path = self.store.get_path(path_id)
        if path is None:
            logger.warning(f"Learning path not found: {path_id}")
            raise NotFoundError(f"Learning path '{path_id}' not found", {"path_id": path_id})
        return path

    def _require_progress(self, user_id: str, path_id: str) -> LearningProgress:
        progress = self.store.get_progress(user_id, path_id)
        if progress is None:
            logger.warning(f"No progress for user {user_id} on path {path_id}")
            raise NotFoundError(
                f"User '{user_id}' has not started path '{path_id}'",
                {"user_id": user_id, "path_id": path_id},
            )
        return progress

    def _register(self, path: LearningPath) -> LearningPath:
        with self._locked(path.id):
            self.store.save_path(path)
        logger.info(f"Registered path {path.id} ({len(path.steps)} steps, '{path.title}')")
        return path

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def create_learning_goal(
        self,
        title: str,
        description: str,
        target_skills: list[str],
        difficulty: int,
        estimated_time: int,
        priority: str = "medium",
        deadline: Optional[str] = None,
    ) -> LearningGoal:
        goal = _coerce(LearningGoal, {
            "title": title,
            "description": description,
            "target_skills": target_skills,
            "difficulty": difficulty,
            "estimated_time": estimated_time,
            "priority": priority,
            "deadline": deadline,
        })
        if not any(s.strip() for s in goal.target_skills):
            raise InvalidInputError("A learning goal needs at least one target skill")
        with self._goal_lock:
            self.store.save_goal(goal)
        logger.info(f"Created goal {goal.id} with {len(goal.target_skills)} skills")
        return goal

    def get_learning_goal(self, goal_id: str) -> LearningGoal:
        goal = self.store.get_goal(goal_id)
        if goal is None:
            logger.warning(f"Learning goal not found: {goal_id}")
            raise NotFoundError(f"Learning goal '{goal_id}' not found", {"goal_id": goal_id})
        return goal

    def list_learning_goals(self) -> list[LearningGoal]:
        return self.store.list_goals()

    def delete_learning_goal(self, goal_id: str) -> bool:
        """Drop the goal record only; paths generated from it stay."""
        with self._goal_lock:
            if not self.store.delete_goal(goal_id):
                raise NotFoundError(f"Learning goal '{goal_id}' not found", {"goal_id": goal_id})
        logger.info(f"Deleted goal {goal_id}")
        return True

    # ------------------------------------------------------------------
    # Path builder
    # ------------------------------------------------------------------

    def generate_learning_path(
        self, goal: Union[LearningGoal, dict], created_by: str = "user"
    ) -> LearningPath:
        goal = _coerce(LearningGoal, goal)
        return self._register(generate_learning_path(goal, created_by=created_by))

    def generate_path_for_goal(self, goal_id: str, created_by: str = "user") -> LearningPath:
        return self.generate_learning_path(self.get_learning_goal(goal_id), created_by)

    def generate_path(
        self,
        topic: str,
        difficulty: DifficultyTier,
        preferences: Union[TopicPreferences, dict, None] = None,
    ) -> LearningPath:
        preferences = _coerce(TopicPreferences, preferences)
        return self._register(generate_path(topic, difficulty, preferences))

    def create_path(self, draft: Union[PathDraft, dict]) -> LearningPath:
        """Import a path built elsewhere, after checking its step graph."""
        draft = _coerce(PathDraft, draft)
        return self._register(build_path_from_draft(draft))

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_path(self, path_id: str) -> LearningPath:
        return self._require_path(path_id)

    def list_paths(self) -> list[LearningPath]:
        return self.store.list_paths()

    def update_path(self, path_id: str, updates: Union[PathUpdate, dict]) -> LearningPath:
        updates = _coerce(PathUpdate, updates)
        with self._locked(path_id):
            path = self._require_path(path_id)
            changes = updates.model_dump(exclude_unset=True, exclude_none=True)
            path = path.model_copy(update=changes)
            path.updated_at = datetime.now().isoformat()
            self.store.save_path(path)
        logger.info(f"Updated path {path_id}: {', '.join(sorted(changes)) or 'no fields'}")
        return path

    def delete_path(self, path_id: str) -> bool:
        """Remove the path and every progress record that points at it."""
        with self._locked(path_id):
            self._require_path(path_id)
            removed = self.store.delete_progress_for_path(path_id)
            self.store.delete_path(path_id)
        with self._registry_lock:
            self._path_locks.pop(path_id, None)
        logger.info(f"Deleted path {path_id} and {removed} progress record(s)")
        return True

    def search_paths(
        self, query: str = "", filters: Union[SearchFilters, dict, None] = None
    ) -> list[LearningPath]:
        filters = _coerce(SearchFilters, filters)
        return search_paths(self.store.list_paths(), query, filters)

    def get_learning_stats(self, user_id: str) -> LearningStats:
        paths_by_id = {p.id: p for p in self.store.list_paths()}
        return compute_learning_stats(
            user_id,
            self.store.list_progress(user_id=user_id),
            paths_by_id,
            self.achievement_rules,
        )

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------

    def start_path(self, path_id: str, user_id: str) -> LearningProgress:
        """Start (or restart) a path for a learner and count the enrollment."""
        if not user_id:
            raise InvalidInputError("user_id is required")
        with self._locked(path_id):
            path = self._require_path(path_id)
            progress = new_progress(path, user_id)
            path.stats.enrollments += 1
            self.store.save_progress(progress)
            # a restart drops this learner's ratings from the average
            refresh_path_stats(path, self.store.list_progress(path_id=path_id))
            self.store.save_path(path)
        logger.info(f"User {user_id} started path {path_id}")
        return progress

    def get_user_progress(self, user_id: str, path_id: str) -> LearningProgress:
        with self._locked(path_id):
            return self._require_progress(user_id, path_id)

    def complete_step(
        self,
        path_id: str,
        user_id: str,
        step_id: str,
        time_spent: int,
        rating: Optional[int] = None,
        note: Optional[str] = None,
    ) -> bool:
        with self._locked(path_id):
            path = self._require_path(path_id)
            progress = self._require_progress(user_id, path_id)
            record_completion(path, progress, step_id, time_spent, rating, note)

            others = [
                p for p in self.store.list_progress(path_id=path_id)
                if p.user_id != user_id
            ]
            refresh_path_stats(path, [progress, *others])
            self.store.save_progress(progress)
            self.store.save_path(path)

        logger.info(
            f"User {user_id} completed step {step_id} on path {path_id} "
            f"({progress.completion_percentage:.1f}% done)"
        )
        return True

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def get_next_steps(self, path_id: str, user_id: str) -> list[LearningStep]:
        with self._locked(path_id):
            path = self._require_path(path_id)
            progress = self._require_progress(user_id, path_id)
        return compute_next_steps(path, progress)

    def get_learning_recommendations(self, path_id: str, user_id: str) -> LearningRecommendation:
        with self._locked(path_id):
            path = self._require_path(path_id)
            progress = self._require_progress(user_id, path_id)
        return compute_recommendations(path, progress)


def dump(value: Any) -> Any:
    """JSON-ready form of a model or a list of models."""
    if isinstance(value, list):
        return [dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value
