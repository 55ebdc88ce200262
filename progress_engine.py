"""
Progress engine — pure logic, no I/O.
Prerequisite checks, frontier computation, step completion bookkeeping,
path statistics and next-step recommendations.
"""

from datetime import datetime
from typing import Iterable, Optional

from learning_errors import InvalidInputError, NotFoundError
from learning_model import (
    LearningPath,
    LearningProgress,
    LearningRecommendation,
    LearningResource,
    LearningStep,
)
from path_builder import DEFAULT_PROVIDER, compute_path_stats

# Ratings below this mark a completed step as worth revisiting.
REVIEW_RATING_THRESHOLD = 3
MAX_NEXT_STEPS = 3
MAX_REVIEW_STEPS = 2
MAX_ADDITIONAL_RESOURCES = 5
SUPPLEMENTARY_RATING = 4.0


def prerequisites_met(step: LearningStep, completed: set[str]) -> bool:
    return all(prereq in completed for prereq in step.prerequisites)


def find_next_available_step(
    path: LearningPath, completed: Iterable[str]
) -> Optional[LearningStep]:
    """First step in catalog order that is not done and has every prerequisite done."""
    done = set(completed)
    for step in path.steps:
        if step.id not in done and prerequisites_met(step, done):
            return step
    return None


def compute_completion_percentage(path: LearningPath, completed: Iterable[str]) -> float:
    if not path.steps:
        return 0.0
    return 100 * len(set(completed)) / len(path.steps)


def new_progress(path: LearningPath, user_id: str) -> LearningProgress:
    first = find_next_available_step(path, [])
    return LearningProgress(
        path_id=path.id,
        user_id=user_id,
        current_step_id=first.id if first else None,
    )


def record_completion(
    path: LearningPath,
    progress: LearningProgress,
    step_id: str,
    time_spent: int,
    rating: Optional[int] = None,
    note: Optional[str] = None,
) -> LearningStep:
    """
    Mark a step done for one learner.

    Validation runs before any write. Completing an already completed step
    leaves the completed set alone but still adds `time_spent` and
    overwrites the rating/note.
    """
    step = path.find_step(step_id)
    if step is None:
        raise NotFoundError(
            f"Step '{step_id}' is not part of path '{path.id}'",
            {"path_id": path.id, "step_id": step_id},
        )
    if time_spent < 0:
        raise InvalidInputError("time_spent must not be negative")
    if rating is not None and not 1 <= rating <= 5:
        raise InvalidInputError(f"Rating must be 1-5, got {rating}")

    now = datetime.now().isoformat()

    step.status = "completed"
    step.progress = 100
    step.completed_at = now

    if step_id not in progress.completed_steps:
        progress.completed_steps.append(step_id)
    progress.total_time_spent += time_spent
    progress.last_accessed_at = now
    progress.completion_percentage = compute_completion_percentage(
        path, progress.completed_steps
    )

    if rating is not None:
        progress.ratings[step_id] = rating
    if note is not None:
        progress.notes[step_id] = note

    next_step = find_next_available_step(path, progress.completed_steps)
    progress.current_step_id = next_step.id if next_step else None
    return step


def refresh_path_stats(path: LearningPath, all_progress: list[LearningProgress]) -> None:
    """Recompute derived stats; the average rating spans every learner on the path."""
    stats = compute_path_stats(path.steps, enrollments=path.stats.enrollments)
    ratings = [
        rating
        for progress in all_progress
        if progress.path_id == path.id
        for rating in progress.ratings.values()
    ]
    stats.average_rating = sum(ratings) / len(ratings) if ratings else 0.0
    path.stats = stats
    path.updated_at = datetime.now().isoformat()


def compute_next_steps(path: LearningPath, progress: LearningProgress) -> list[LearningStep]:
    """The frontier, easiest first. sorted() is stable so ties keep catalog order."""
    done = set(progress.completed_steps)
    frontier = [
        step for step in path.steps
        if step.id not in done and prerequisites_met(step, done)
    ]
    return sorted(frontier, key=lambda s: s.difficulty)


def _needs_review(progress: LearningProgress, step_id: str) -> bool:
    rating = progress.ratings.get(step_id)
    return rating is not None and rating < REVIEW_RATING_THRESHOLD


def supplementary_resources(
    path: LearningPath, progress: LearningProgress
) -> list[LearningResource]:
    resources = []
    for step_id in progress.ratings:
        if not _needs_review(progress, step_id):
            continue
        step = path.find_step(step_id)
        if step is None:
            continue
        resources.append(LearningResource(
            title=f"{step.title} supplementary material",
            type="article",
            difficulty=max(1, step.difficulty - 1),
            rating=SUPPLEMENTARY_RATING,
            provider=DEFAULT_PROVIDER,
        ))
    return resources


def compute_recommendations(
    path: LearningPath, progress: LearningProgress
) -> LearningRecommendation:
    """Read-only summary of what to do next, what to revisit and what is left."""
    done = set(progress.completed_steps)
    review = [
        step for step in path.steps
        if step.id in done and _needs_review(progress, step.id)
    ]
    remaining = sum(s.estimated_time for s in path.steps if s.id not in done)

    return LearningRecommendation(
        next_steps=compute_next_steps(path, progress)[:MAX_NEXT_STEPS],
        review_steps=review[:MAX_REVIEW_STEPS],
        additional_resources=supplementary_resources(path, progress)[:MAX_ADDITIONAL_RESOURCES],
        estimated_time_to_complete=remaining,
    )
