"""
Catalog queries — pure logic, no I/O.
Free-text search with attribute filters, and per-learner aggregate stats.
"""

from collections import Counter
from typing import Optional

from learning_errors import InvalidInputError
from learning_model import (
    LearningPath,
    LearningProgress,
    LearningStats,
    SearchFilters,
)

TITLE_WEIGHT = 0.8
DESCRIPTION_WEIGHT = 0.6
TAG_WEIGHT = 0.4  # per matching tag
MAX_FAVORITE_CATEGORIES = 3

# (metric, threshold, badge). Metrics: completed_paths, total_time_spent
# (minutes), average_completion (percent).
ACHIEVEMENT_RULES = [
    ("completed_paths", 1, "beginner"),
    ("completed_paths", 5, "learning enthusiast"),
    ("completed_paths", 10, "knowledge master"),
    ("total_time_spent", 3600, "time investor"),
    ("average_completion", 80, "perfectionist"),
]


def passes_filters(path: LearningPath, filters: SearchFilters) -> bool:
    if filters.category and path.category != filters.category:
        return False
    if filters.difficulty and path.difficulty != filters.difficulty:
        return False
    if filters.min_duration is not None and path.estimated_duration < filters.min_duration:
        return False
    if filters.max_duration is not None and path.estimated_duration > filters.max_duration:
        return False
    if filters.tags and not any(tag in path.tags for tag in filters.tags):
        return False
    return True


def relevance_score(path: LearningPath, query: str) -> float:
    """Case-insensitive substring scoring over title, description and tags."""
    needle = query.lower()
    score = 0.0
    if needle in path.title.lower():
        score += TITLE_WEIGHT
    if needle in path.description.lower():
        score += DESCRIPTION_WEIGHT
    for tag in path.tags:
        if needle in tag.lower():
            score += TAG_WEIGHT
    return score


def search_paths(
    paths: list[LearningPath],
    query: str = "",
    filters: Optional[SearchFilters] = None,
) -> list[LearningPath]:
    filters = filters or SearchFilters()
    if (
        filters.min_duration is not None
        and filters.max_duration is not None
        and filters.min_duration > filters.max_duration
    ):
        raise InvalidInputError(
            f"min_duration ({filters.min_duration}) exceeds max_duration ({filters.max_duration})"
        )

    scored = []
    for path in paths:
        if not passes_filters(path, filters):
            continue
        score = relevance_score(path, query) if query else 0.0
        if score > 0 or not query:
            scored.append((score, path))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in scored]


def compute_achievements(metrics: dict[str, float], rules=None) -> list[str]:
    rules = ACHIEVEMENT_RULES if rules is None else rules
    return [badge for metric, threshold, badge in rules if metrics.get(metric, 0) >= threshold]


def compute_learning_stats(
    user_id: str,
    progress_records: list[LearningProgress],
    paths_by_id: dict[str, LearningPath],
    rules=None,
) -> LearningStats:
    records = [p for p in progress_records if p.user_id == user_id]

    completed = sum(1 for p in records if p.completion_percentage >= 100)
    in_progress = sum(1 for p in records if 0 < p.completion_percentage < 100)
    total_time = sum(p.total_time_spent for p in records)
    average = (
        sum(p.completion_percentage for p in records) / len(records) if records else 0.0
    )

    categories = Counter(
        paths_by_id[p.path_id].category for p in records if p.path_id in paths_by_id
    )
    favorites = [c for c, _ in categories.most_common(MAX_FAVORITE_CATEGORIES)]

    metrics = {
        "completed_paths": completed,
        "total_time_spent": total_time,
        "average_completion": average,
    }
    return LearningStats(
        user_id=user_id,
        total_paths=len(records),
        completed_paths=completed,
        in_progress_paths=in_progress,
        total_time_spent=total_time,
        average_completion=average,
        favorite_categories=favorites,
        achievements=compute_achievements(metrics, rules),
    )
