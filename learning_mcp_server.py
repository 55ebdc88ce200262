"""
Learning Path MCP Server.
Exposes tools for building paths, tracking progress and getting recommendations.
"""

import logging
from typing import Optional

from fastmcp import FastMCP

from learning_errors import LearningPathError
from learning_service import LearningPathService, dump
from learning_store import create_store


def _call(fn, *args, **kwargs):
    """Run a service call; engine errors come back as {"error", "kind"}."""
    try:
        return dump(fn(*args, **kwargs))
    except LearningPathError as e:
        return e.to_dict()


def create_server(service: LearningPathService) -> FastMCP:
    mcp = FastMCP("LearningPath")

    @mcp.tool()
    def create_path_from_goal(
        title: str,
        target_skills: list[str],
        difficulty: int,
        estimated_time: int,
        description: str = "",
        priority: str = "medium",
        deadline: Optional[str] = None,
        user_id: str = "user",
    ) -> dict:
        """
        Record a learning goal and generate a path for it.
        Each skill gets concept -> practice (-> project when difficulty >= 3)
        steps; a final assessment depends on all of them.
        estimated_time is in minutes.
        """
        try:
            goal = service.create_learning_goal(
                title, description, target_skills, difficulty,
                estimated_time, priority, deadline,
            )
        except LearningPathError as e:
            return e.to_dict()
        path = _call(service.generate_learning_path, goal, created_by=user_id)
        if "error" in path:
            return path
        return {"goal_id": goal.id, "path": path}

    @mcp.tool()
    def create_path_from_topic(
        topic: str,
        difficulty: str = "beginner",
        preferred_types: Optional[list[str]] = None,
        focus_areas: Optional[list[str]] = None,
    ) -> dict:
        """
        Generate a single-topic path. difficulty is beginner, intermediate or
        advanced; preferred_types picks from concept, practice, project,
        assessment (all four when omitted).
        """
        preferences = {}
        if preferred_types is not None:
            preferences["preferred_types"] = preferred_types
        if focus_areas is not None:
            preferences["focus_areas"] = focus_areas
        return _call(service.generate_path, topic, difficulty, preferences)

    @mcp.tool()
    def import_path(path: dict) -> dict:
        """
        Add a path assembled outside the builder. Steps may reference each
        other by id in their prerequisites; the graph must be acyclic.
        """
        return _call(service.create_path, path)

    @mcp.tool()
    def get_path(path_id: str) -> dict:
        """Return a path with its steps and aggregate stats."""
        return _call(service.get_path, path_id)

    @mcp.tool()
    def start_path(path_id: str, user_id: str) -> dict:
        """Start (or restart) a path for a learner."""
        return _call(service.start_path, path_id, user_id)

    @mcp.tool()
    def get_progress(path_id: str, user_id: str) -> dict:
        """Return the learner's progress record on a path."""
        return _call(service.get_user_progress, user_id, path_id)

    @mcp.tool()
    def complete_step(
        path_id: str,
        user_id: str,
        step_id: str,
        time_spent: int,
        rating: Optional[int] = None,
        note: Optional[str] = None,
    ) -> dict:
        """
        Mark a step complete. time_spent (minutes) accumulates on every call,
        rating (1-5) and note overwrite earlier values for the step.
        """
        result = _call(
            service.complete_step, path_id, user_id, step_id, time_spent, rating, note
        )
        if isinstance(result, dict):
            return result
        progress = _call(service.get_user_progress, user_id, path_id)
        if "error" in progress:
            return progress
        return {
            "completed": True,
            "step_id": step_id,
            "current_step_id": progress["current_step_id"],
            "completion_percentage": progress["completion_percentage"],
            "total_time_spent": progress["total_time_spent"],
        }

    @mcp.tool()
    def get_next_steps(path_id: str, user_id: str) -> dict:
        """Every step the learner can start now, easiest first."""
        steps = _call(service.get_next_steps, path_id, user_id)
        if isinstance(steps, dict):
            return steps
        return {"path_id": path_id, "next_steps": steps}

    @mcp.tool()
    def get_recommendations(path_id: str, user_id: str) -> dict:
        """Next steps, low-rated steps to review, extra resources and time left."""
        return _call(service.get_learning_recommendations, path_id, user_id)

    @mcp.tool()
    def search_paths(
        query: str = "",
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        tags: Optional[list[str]] = None,
        min_duration: Optional[int] = None,
        max_duration: Optional[int] = None,
    ) -> dict:
        """Search the catalog. Filters exclude; the query ranks what remains."""
        filters = {
            "category": category,
            "difficulty": difficulty,
            "tags": tags or [],
            "min_duration": min_duration,
            "max_duration": max_duration,
        }
        paths = _call(service.search_paths, query, filters)
        if isinstance(paths, dict):
            return paths
        return {"query": query, "count": len(paths), "paths": paths}

    @mcp.tool()
    def get_user_stats(user_id: str) -> dict:
        """Aggregate stats and achievements across all of a learner's paths."""
        return _call(service.get_learning_stats, user_id)

    @mcp.tool()
    def list_goals() -> dict:
        """Return every recorded learning goal."""
        return {"goals": _call(service.list_learning_goals)}

    @mcp.tool()
    def delete_path(path_id: str) -> dict:
        """Delete a path together with all progress recorded on it."""
        result = _call(service.delete_path, path_id)
        if isinstance(result, dict):
            return result
        return {"deleted": True, "path_id": path_id}

    @mcp.tool()
    def delete_goal(goal_id: str) -> dict:
        """Delete a goal record. Paths generated from it are kept."""
        result = _call(service.delete_learning_goal, goal_id)
        if isinstance(result, dict):
            return result
        return {"deleted": True, "goal_id": goal_id}

    return mcp


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_server(LearningPathService(create_store())).run()
