"""
Learning path data models.
Pydantic v2 models for steps, paths, per-user progress and goals.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

StepType = Literal["concept", "practice", "assessment", "project", "reading"]
StepStatus = Literal["not-started", "in-progress", "completed", "skipped"]
ResourceType = Literal["video", "article", "book", "course", "exercise", "quiz"]
DifficultyTier = Literal["beginner", "intermediate", "advanced"]
Priority = Literal["low", "medium", "high"]
GeneratedStepType = Literal["concept", "practice", "project", "assessment"]


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _now() -> str:
    return datetime.now().isoformat()


class LearningResource(BaseModel):
    id: str = Field(default_factory=lambda: new_id("res"))
    title: str
    type: ResourceType
    url: Optional[str] = None
    content: Optional[str] = None
    duration: Optional[int] = None  # minutes
    difficulty: int = Field(default=1, ge=1, le=5)
    rating: Optional[float] = None
    provider: Optional[str] = None


class LearningStep(BaseModel):
    id: str = Field(default_factory=lambda: new_id("step"))
    title: str
    description: str = ""
    type: StepType
    difficulty: int = Field(default=1, ge=1, le=5)
    estimated_time: int = Field(default=0, ge=0)  # minutes
    prerequisites: list[str] = Field(default_factory=list)
    resources: list[LearningResource] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    status: StepStatus = "not-started"
    progress: float = Field(default=0.0, ge=0, le=100)
    completed_at: Optional[str] = None
    notes: Optional[str] = None


class PathStats(BaseModel):
    total_steps: int = 0
    completed_steps: int = 0
    total_time: int = 0  # minutes
    completed_time: int = 0
    average_rating: float = 0.0
    enrollments: int = 0


class LearningPath(BaseModel):
    id: str = Field(default_factory=lambda: new_id("path"))
    title: str
    description: str = ""
    category: str
    difficulty: DifficultyTier
    estimated_duration: int = 0  # hours
    steps: list[LearningStep] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)  # topics, not step ids
    objectives: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)
    created_by: str = "user"
    is_public: bool = False
    stats: PathStats = Field(default_factory=PathStats)

    def find_step(self, step_id: str) -> Optional[LearningStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class LearningProgress(BaseModel):
    path_id: str
    user_id: str
    current_step_id: Optional[str] = None
    completed_steps: list[str] = Field(default_factory=list)
    total_time_spent: int = 0  # minutes
    started_at: str = Field(default_factory=_now)
    last_accessed_at: str = Field(default_factory=_now)
    completion_percentage: float = 0.0
    notes: dict[str, str] = Field(default_factory=dict)  # step id -> note
    ratings: dict[str, int] = Field(default_factory=dict)  # step id -> 1..5


class LearningGoal(BaseModel):
    id: str = Field(default_factory=lambda: new_id("goal"))
    title: str = Field(min_length=1)
    description: str = ""
    target_skills: list[str] = Field(default_factory=list)
    difficulty: int = Field(default=1, ge=1, le=5)
    estimated_time: int = Field(default=0, ge=0)  # minutes
    priority: Priority = "medium"
    deadline: Optional[str] = None
    created_at: str = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class TopicPreferences(BaseModel):
    preferred_types: list[GeneratedStepType] = Field(
        default_factory=lambda: ["concept", "practice", "project", "assessment"]
    )
    focus_areas: list[str] = Field(default_factory=list)


class StepDraft(BaseModel):
    """A step supplied from outside the builder. Tracker-owned fields are not accepted."""

    id: Optional[str] = None
    title: str = Field(min_length=1)
    description: str = ""
    type: StepType = "concept"
    difficulty: int = Field(default=1, ge=1, le=5)
    estimated_time: int = Field(default=0, ge=0)
    prerequisites: list[str] = Field(default_factory=list)
    resources: list[LearningResource] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class PathDraft(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    category: Optional[str] = None
    difficulty: DifficultyTier = "beginner"
    estimated_duration: Optional[int] = None
    steps: list[StepDraft] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_by: str = "user"
    is_public: bool = False


class PathUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[DifficultyTier] = None
    estimated_duration: Optional[int] = None
    prerequisites: Optional[list[str]] = None
    objectives: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    is_public: Optional[bool] = None


class SearchFilters(BaseModel):
    category: Optional[str] = None
    difficulty: Optional[DifficultyTier] = None
    tags: list[str] = Field(default_factory=list)
    min_duration: Optional[int] = None  # hours
    max_duration: Optional[int] = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class LearningRecommendation(BaseModel):
    next_steps: list[LearningStep] = Field(default_factory=list)
    review_steps: list[LearningStep] = Field(default_factory=list)
    additional_resources: list[LearningResource] = Field(default_factory=list)
    estimated_time_to_complete: int = 0


class LearningStats(BaseModel):
    user_id: str
    total_paths: int = 0
    completed_paths: int = 0
    in_progress_paths: int = 0
    total_time_spent: int = 0
    average_completion: float = 0.0
    favorite_categories: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
