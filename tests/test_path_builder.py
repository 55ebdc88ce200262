"""Unit tests for path_builder.py — generation, category inference, DAG validation."""

import pytest

from learning_errors import InvalidInputError
from learning_model import LearningGoal, LearningStep, PathDraft, StepDraft, TopicPreferences
from path_builder import (
    build_path_from_draft,
    difficulty_tier,
    generate_learning_path,
    generate_path,
    generate_resources,
    infer_category,
    validate_path_steps,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_goal(skills=("X", "Y"), difficulty=4, estimated_time=120, **kwargs) -> LearningGoal:
    return LearningGoal(
        title=kwargs.pop("title", "Goal"),
        description=kwargs.pop("description", "A goal"),
        target_skills=list(skills),
        difficulty=difficulty,
        estimated_time=estimated_time,
        **kwargs,
    )


def make_step(step_id: str, prerequisites=()) -> LearningStep:
    return LearningStep(id=step_id, title=step_id, type="concept", prerequisites=list(prerequisites))


def assert_dag_order(steps: list[LearningStep]):
    """Every prerequisite points at an earlier step of the same list."""
    seen = set()
    for step in steps:
        assert step.id not in step.prerequisites
        assert set(step.prerequisites) <= seen
        seen.add(step.id)


# ---------------------------------------------------------------------------
# generate_learning_path
# ---------------------------------------------------------------------------

class TestGenerateLearningPath:
    def test_two_skills_difficulty_four(self):
        path = generate_learning_path(make_goal())
        types = [s.type for s in path.steps]
        assert types == [
            "concept", "practice", "project",
            "concept", "practice", "project",
            "assessment",
        ]
        assessment = path.steps[-1]
        assert set(assessment.prerequisites) == {s.id for s in path.steps[:6]}
        assert len(assessment.prerequisites) == 6

    def test_steps_follow_skill_order(self):
        path = generate_learning_path(make_goal())
        assert "X" in path.steps[0].tags
        assert "Y" in path.steps[3].tags

    def test_prerequisite_wiring(self):
        path = generate_learning_path(make_goal())
        concept_x, practice_x, project_x, concept_y, practice_y, project_y, _ = path.steps
        assert concept_x.prerequisites == []
        assert practice_x.prerequisites == [concept_x.id]
        assert project_x.prerequisites == [practice_x.id]
        assert concept_y.prerequisites == [practice_x.id]
        assert practice_y.prerequisites == [concept_y.id]
        assert project_y.prerequisites == [practice_y.id]

    def test_low_difficulty_has_no_project(self):
        path = generate_learning_path(make_goal(difficulty=2))
        assert [s.type for s in path.steps] == [
            "concept", "practice", "concept", "practice", "assessment",
        ]

    def test_time_split(self):
        path = generate_learning_path(make_goal(estimated_time=120))
        # 120 minutes over two skills -> 60 per skill
        times = {s.type: s.estimated_time for s in path.steps}
        assert times == {"concept": 18, "practice": 24, "project": 12, "assessment": 6}

    def test_stats_match_steps(self):
        path = generate_learning_path(make_goal())
        assert path.stats.total_steps == len(path.steps)
        assert path.stats.total_time == sum(s.estimated_time for s in path.steps)
        assert path.stats.completed_steps == 0
        assert path.stats.enrollments == 0

    def test_path_attributes(self):
        path = generate_learning_path(make_goal(skills=["React hooks"], priority="high"))
        assert path.category == "frontend development"
        assert path.difficulty == "intermediate"
        assert path.estimated_duration == 2
        assert path.tags == ["React hooks", "high"]
        assert path.is_public is False
        assert path.objectives == ["Master the core skills of React hooks"]

    def test_is_dag(self):
        path = generate_learning_path(make_goal(skills=["a", "b", "c", "d"], difficulty=5))
        assert_dag_order(path.steps)
        validate_path_steps(path.steps)

    def test_ids_are_unique(self):
        path = generate_learning_path(make_goal(skills=[f"s{i}" for i in range(20)]))
        ids = [s.id for s in path.steps]
        assert len(ids) == len(set(ids))

    def test_empty_skills_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_learning_path(make_goal(skills=[]))

    def test_blank_skills_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_learning_path(make_goal(skills=["  "]))


# ---------------------------------------------------------------------------
# generate_path
# ---------------------------------------------------------------------------

class TestGeneratePath:
    def test_all_types(self):
        path = generate_path("Python", "beginner")
        concept, practice, project, assessment = path.steps
        assert [s.type for s in path.steps] == ["concept", "practice", "project", "assessment"]
        assert concept.prerequisites == []
        assert practice.prerequisites == [concept.id]
        assert project.prerequisites == [concept.id, practice.id]
        assert assessment.prerequisites == [concept.id, practice.id, project.id]
        assert [s.estimated_time for s in path.steps] == [60, 90, 180, 45]
        assert [s.difficulty for s in path.steps] == [1, 2, 3, 2]
        assert path.estimated_duration == 7  # 375 minutes
        assert path.category == "programming languages"
        assert path.created_by == "system"
        assert path.is_public is True

    def test_advanced_difficulties(self):
        path = generate_path("Vue", "advanced")
        assert [s.difficulty for s in path.steps] == [3, 4, 5, 4]

    def test_subset_keeps_order(self):
        prefs = TopicPreferences(preferred_types=["assessment", "practice"])
        path = generate_path("SQL", "intermediate", prefs)
        practice, assessment = path.steps
        assert practice.type == "practice"
        assert practice.prerequisites == []
        assert assessment.prerequisites == [practice.id]

    def test_focus_areas_become_tags(self):
        prefs = TopicPreferences(preferred_types=["concept"], focus_areas=["testing"])
        path = generate_path("Go", "beginner", prefs)
        assert path.tags == ["Go", "beginner", "auto-generated", "testing"]

    def test_empty_preferences_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_path("Go", "beginner", TopicPreferences(preferred_types=[]))

    def test_blank_topic_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_path("  ", "beginner")

    def test_unknown_tier_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_path("Go", "expert")


# ---------------------------------------------------------------------------
# infer_category / difficulty_tier / generate_resources
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_category_case_insensitive(self):
        assert infer_category("Advanced REACT Patterns") == "frontend development"

    def test_category_fallback(self):
        assert infer_category("Knitting") == "general skills"

    def test_category_database(self):
        assert infer_category("Database internals") == "databases"

    def test_tiers(self):
        assert [difficulty_tier(d) for d in range(1, 6)] == [
            "beginner", "beginner", "intermediate", "intermediate", "advanced",
        ]

    def test_resources_per_type(self):
        assert generate_resources("Rust", "concept")[0].type == "article"
        assert generate_resources("Rust", "practice")[0].type == "exercise"
        assert generate_resources("Rust", "project")[0].type == "course"
        assert generate_resources("Rust", "assessment")[0].type == "quiz"
        assert generate_resources("Rust", "reading") == []


# ---------------------------------------------------------------------------
# validate_path_steps / build_path_from_draft
# ---------------------------------------------------------------------------

class TestValidatePathSteps:
    def test_topological_order(self):
        steps = [make_step("c", ["b"]), make_step("a"), make_step("b", ["a"])]
        assert validate_path_steps(steps) == ["a", "b", "c"]

    def test_cycle(self):
        steps = [make_step("a", ["b"]), make_step("b", ["a"])]
        with pytest.raises(InvalidInputError, match="cycle"):
            validate_path_steps(steps)

    def test_cycle_context_names_its_steps(self):
        steps = [make_step("d"), make_step("a", ["c"]), make_step("b", ["a"]), make_step("c", ["b"])]
        with pytest.raises(InvalidInputError) as info:
            validate_path_steps(steps)
        assert sorted(info.value.context["step_ids"]) == ["a", "b", "c"]

    def test_ties_keep_catalog_order(self):
        steps = [make_step("z"), make_step("a"), make_step("m", ["z"])]
        assert validate_path_steps(steps) == ["z", "a", "m"]

    def test_self_reference(self):
        with pytest.raises(InvalidInputError, match="itself"):
            validate_path_steps([make_step("a", ["a"])])

    def test_dangling_reference(self):
        with pytest.raises(InvalidInputError, match="unknown prerequisite"):
            validate_path_steps([make_step("a", ["ghost"])])

    def test_duplicate_ids(self):
        with pytest.raises(InvalidInputError, match="Duplicate"):
            validate_path_steps([make_step("a"), make_step("a")])

    def test_empty(self):
        assert validate_path_steps([]) == []


class TestBuildPathFromDraft:
    def test_import_assigns_ids_and_stats(self):
        draft = PathDraft(
            title="Python tooling",
            steps=[
                StepDraft(id="intro", title="Intro", estimated_time=30),
                StepDraft(title="Lint", estimated_time=45),
                StepDraft(id="ship", title="Ship", prerequisites=["intro", "intro"]),
            ],
        )
        path = build_path_from_draft(draft)
        assert path.steps[0].id == "intro"
        assert path.steps[1].id.startswith("step_")
        assert path.steps[2].prerequisites == ["intro"]
        assert path.category == "programming languages"
        assert path.estimated_duration == 2
        assert path.stats.total_steps == 3
        assert path.stats.total_time == 75
        assert all(s.status == "not-started" for s in path.steps)

    def test_import_rejects_cycle(self):
        draft = PathDraft(
            title="Loop",
            steps=[
                StepDraft(id="a", title="A", prerequisites=["b"]),
                StepDraft(id="b", title="B", prerequisites=["a"]),
            ],
        )
        with pytest.raises(InvalidInputError):
            build_path_from_draft(draft)
