"""
Path builder — pure logic, no I/O.
Turns a goal or a topic request into a prerequisite-ordered learning path,
and validates step graphs that arrive from outside the builder.
"""

import math
from collections import Counter
from typing import Optional

import networkx as nx

from learning_errors import InvalidInputError
from learning_model import (
    DifficultyTier,
    LearningGoal,
    LearningPath,
    LearningResource,
    LearningStep,
    PathDraft,
    PathStats,
    TopicPreferences,
    new_id,
)

DEFAULT_PROVIDER = "AI Learning Platform"
GENERAL_CATEGORY = "general skills"

# Checked in order; the first keyword contained in the topic wins.
CATEGORY_KEYWORDS = {
    "javascript": "programming languages",
    "python": "programming languages",
    "react": "frontend development",
    "vue": "frontend development",
    "nodejs": "backend development",
    "database": "databases",
    "ai": "artificial intelligence",
    "machine learning": "artificial intelligence",
    "design": "design",
    "marketing": "marketing",
}

# Share of a skill's time budget per step type; the assessment gets the rest.
GOAL_TIME_SPLIT = {
    "concept": 0.3,
    "practice": 0.4,
    "project": 0.2,
    "assessment": 0.1,
}
PROJECT_MIN_DIFFICULTY = 3

TOPIC_STEP_ORDER = ["concept", "practice", "project", "assessment"]
TOPIC_STEP_MINUTES = {
    "concept": 60,
    "practice": 90,
    "project": 180,
    "assessment": 45,
}
# (beginner, intermediate, advanced)
TOPIC_STEP_DIFFICULTY = {
    "concept": (1, 2, 3),
    "practice": (2, 3, 4),
    "project": (3, 4, 5),
    "assessment": (2, 3, 4),
}
TIERS: list[DifficultyTier] = ["beginner", "intermediate", "advanced"]

# step type -> (resource type, title suffix, difficulty, rating)
RESOURCE_TEMPLATES = {
    "concept": ("article", "concepts explained", 2, 4.5),
    "practice": ("exercise", "exercise set", 3, 4.2),
    "project": ("course", "project guide", 4, 4.7),
    "assessment": ("quiz", "knowledge check", 3, 4.0),
}


def infer_category(topic: str) -> str:
    lowered = topic.lower()
    for keyword, category in CATEGORY_KEYWORDS.items():
        if keyword in lowered:
            return category
    return GENERAL_CATEGORY


def difficulty_tier(difficulty: int) -> DifficultyTier:
    """Map a 1-5 goal difficulty to a path tier."""
    if difficulty <= 2:
        return "beginner"
    if difficulty <= 4:
        return "intermediate"
    return "advanced"


def generate_resources(topic: str, step_type: str) -> list[LearningResource]:
    template = RESOURCE_TEMPLATES.get(step_type)
    if template is None:
        return []
    resource_type, suffix, difficulty, rating = template
    return [
        LearningResource(
            title=f"{topic} {suffix}",
            type=resource_type,
            difficulty=difficulty,
            rating=rating,
            provider=DEFAULT_PROVIDER,
        )
    ]


def compute_path_stats(steps: list[LearningStep], enrollments: int = 0) -> PathStats:
    """Fresh stats for a step list. Completion figures reflect step status."""
    completed = [s for s in steps if s.status == "completed"]
    return PathStats(
        total_steps=len(steps),
        completed_steps=len(completed),
        total_time=sum(s.estimated_time for s in steps),
        completed_time=sum(s.estimated_time for s in completed),
        enrollments=enrollments,
    )


def validate_path_steps(steps: list[LearningStep]) -> list[str]:
    """
    Check that the prerequisite references form a DAG within this step list.
    Rejects duplicate ids, dangling or self references, and cycles.
    Returns the step ids in a topological order, ties in catalog order.
    """
    ids = [s.id for s in steps]
    known = set(ids)
    if len(known) != len(ids):
        dupes = sorted(i for i, count in Counter(ids).items() if count > 1)
        raise InvalidInputError(
            f"Duplicate step ids: {', '.join(dupes)}", {"step_ids": dupes}
        )

    graph = nx.DiGraph()
    graph.add_nodes_from(ids)
    for step in steps:
        for prereq in step.prerequisites:
            if prereq == step.id:
                raise InvalidInputError(
                    f"Step '{step.id}' lists itself as a prerequisite",
                    {"step_id": step.id},
                )
            if prereq not in known:
                raise InvalidInputError(
                    f"Step '{step.id}' references unknown prerequisite '{prereq}'",
                    {"step_id": step.id, "prerequisite": prereq},
                )
            graph.add_edge(prereq, step.id)

    if not nx.is_directed_acyclic_graph(graph):
        cyclic = [u for u, _ in nx.find_cycle(graph)]
        raise InvalidInputError(
            "Prerequisites form a cycle", {"step_ids": cyclic}
        )
    position = {step_id: n for n, step_id in enumerate(ids)}
    return list(nx.lexicographical_topological_sort(graph, key=position.get))


def generate_learning_path(goal: LearningGoal, created_by: str = "user") -> LearningPath:
    """
    Build a path from a goal.

    Per skill: concept -> practice -> (project when difficulty >= 3). Each
    skill's concept step waits on the previous skill's practice step. One
    assessment step closes the path and depends on every earlier step.
    """
    skills = [s.strip() for s in goal.target_skills if s.strip()]
    if not skills:
        raise InvalidInputError("A learning goal needs at least one target skill")

    base_time = goal.estimated_time // len(skills)
    steps: list[LearningStep] = []
    previous_practice: Optional[LearningStep] = None

    for skill in skills:
        concept = LearningStep(
            title=f"Learn {skill} fundamentals",
            description=f"Understand the core concepts and principles of {skill}",
            type="concept",
            difficulty=goal.difficulty,
            estimated_time=int(base_time * GOAL_TIME_SPLIT["concept"]),
            prerequisites=[previous_practice.id] if previous_practice else [],
            resources=generate_resources(skill, "concept"),
            tags=[skill, "concept", "fundamentals"],
        )
        practice = LearningStep(
            title=f"{skill} practice",
            description=f"Apply {skill} through hands-on exercises",
            type="practice",
            difficulty=goal.difficulty,
            estimated_time=int(base_time * GOAL_TIME_SPLIT["practice"]),
            prerequisites=[concept.id],
            resources=generate_resources(skill, "practice"),
            tags=[skill, "practice", "exercise"],
        )
        steps += [concept, practice]

        if goal.difficulty >= PROJECT_MIN_DIFFICULTY:
            steps.append(LearningStep(
                title=f"{skill} project",
                description=f"Complete a real project built with {skill}",
                type="project",
                difficulty=goal.difficulty,
                estimated_time=int(base_time * GOAL_TIME_SPLIT["project"]),
                prerequisites=[practice.id],
                resources=generate_resources(skill, "project"),
                tags=[skill, "project", "hands-on"],
            ))
        previous_practice = practice

    steps.append(LearningStep(
        title="Comprehensive assessment",
        description="Test your command of everything covered in this path",
        type="assessment",
        difficulty=goal.difficulty,
        estimated_time=int(base_time * GOAL_TIME_SPLIT["assessment"]),
        prerequisites=[s.id for s in steps],
        resources=generate_resources("Comprehensive assessment", "assessment"),
        tags=["assessment", "test", "comprehensive"],
    ))

    return LearningPath(
        title=goal.title,
        description=goal.description,
        category=infer_category(skills[0]),
        difficulty=difficulty_tier(goal.difficulty),
        estimated_duration=math.ceil(goal.estimated_time / 60),
        steps=steps,
        objectives=[f"Master the core skills of {skill}" for skill in skills],
        tags=[*skills, goal.priority],
        created_by=created_by,
        is_public=False,
        stats=compute_path_stats(steps),
    )


def generate_path(
    topic: str,
    difficulty: DifficultyTier,
    preferences: Optional[TopicPreferences] = None,
) -> LearningPath:
    """Build a single-topic path with one step per requested step type."""
    topic = topic.strip()
    if not topic:
        raise InvalidInputError("Topic is required")
    if difficulty not in TIERS:
        raise InvalidInputError(f"Unknown difficulty tier '{difficulty}'")
    preferences = preferences or TopicPreferences()
    requested = set(preferences.preferred_types)
    if not requested:
        raise InvalidInputError("At least one preferred step type is required")

    tier_index = TIERS.index(difficulty)
    descriptions = {
        "concept": (f"{topic} fundamentals", f"Learn the core concepts and principles of {topic}"),
        "practice": (f"{topic} practice", f"Apply {topic} through hands-on exercises"),
        "project": (f"{topic} project", f"Build a complete project with {topic}"),
        "assessment": (f"{topic} assessment", f"Test your command of {topic}"),
    }
    tag_words = {
        "concept": ["fundamentals", "concept"],
        "practice": ["practice", "exercise"],
        "project": ["project", "hands-on"],
        "assessment": ["assessment", "test"],
    }

    steps: list[LearningStep] = []
    for step_type in TOPIC_STEP_ORDER:
        if step_type not in requested:
            continue
        if step_type == "practice":
            prerequisites = [steps[0].id] if steps else []
        elif step_type == "project":
            prerequisites = [s.id for s in steps[:2]]
        else:
            prerequisites = [s.id for s in steps]

        title, description = descriptions[step_type]
        steps.append(LearningStep(
            title=title,
            description=description,
            type=step_type,
            difficulty=TOPIC_STEP_DIFFICULTY[step_type][tier_index],
            estimated_time=TOPIC_STEP_MINUTES[step_type],
            prerequisites=prerequisites,
            resources=generate_resources(topic, step_type),
            tags=[topic, *tag_words[step_type]],
        ))

    total_minutes = sum(s.estimated_time for s in steps)
    return LearningPath(
        title=f"{topic} learning path",
        description=f"A systematic path through {topic}",
        category=infer_category(topic),
        difficulty=difficulty,
        estimated_duration=math.ceil(total_minutes / 60),
        steps=steps,
        objectives=[
            f"Master the core concepts of {topic}",
            f"Apply {topic} to real problems",
            f"Deliver a project built with {topic}",
        ],
        tags=[topic, difficulty, "auto-generated", *preferences.focus_areas],
        created_by="system",
        is_public=True,
        stats=compute_path_stats(steps),
    )


def build_path_from_draft(draft: PathDraft) -> LearningPath:
    """Accept a path assembled outside the builder once its step graph checks out."""
    steps = [
        LearningStep(
            **step.model_dump(exclude={"id"}),
            id=step.id or new_id("step"),
        )
        for step in draft.steps
    ]
    for step in steps:
        step.prerequisites = list(dict.fromkeys(step.prerequisites))
    validate_path_steps(steps)

    total_minutes = sum(s.estimated_time for s in steps)
    return LearningPath(
        title=draft.title,
        description=draft.description,
        category=draft.category or infer_category(draft.title),
        difficulty=draft.difficulty,
        estimated_duration=(
            draft.estimated_duration
            if draft.estimated_duration is not None
            else math.ceil(total_minutes / 60)
        ),
        steps=steps,
        prerequisites=draft.prerequisites,
        objectives=draft.objectives,
        tags=draft.tags,
        created_by=draft.created_by,
        is_public=draft.is_public,
        stats=compute_path_stats(steps),
    )
