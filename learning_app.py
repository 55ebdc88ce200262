"""
Learning Path REST API — FastAPI backend.

Serves the learning path engine over HTTP.

    python3 learning_app.py
    curl http://localhost:8000/api/paths
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from learning_errors import InvalidInputError, LearningPathError, NotFoundError
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
    Priority,
    SearchFilters,
    TopicPreferences,
)
from learning_service import LearningPathService
from learning_store import create_store

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

HOST = os.getenv("LEARNING_PATH_HOST", "127.0.0.1")
PORT = int(os.getenv("LEARNING_PATH_PORT", "8000"))

STATUS_BY_KIND = {
    NotFoundError.kind: 404,
    InvalidInputError.kind: 400,
}

logger = logging.getLogger("learning_app")

# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class GoalRequest(BaseModel):
    title: str
    description: str = ""
    target_skills: list[str]
    difficulty: int
    estimated_time: int
    priority: Priority = "medium"
    deadline: Optional[str] = None
    created_by: str = "user"


class TopicPathRequest(BaseModel):
    topic: str
    difficulty: DifficultyTier = "beginner"
    preferences: TopicPreferences = Field(default_factory=TopicPreferences)


class StartRequest(BaseModel):
    user_id: str


class CompleteStepRequest(BaseModel):
    user_id: str
    time_spent: int = 0
    rating: Optional[int] = None
    note: Optional[str] = None


class SearchRequest(BaseModel):
    query: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)


class GeneratedPath(BaseModel):
    goal_id: str
    path: LearningPath


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

def create_app(service: Optional[LearningPathService] = None) -> FastAPI:
    app = FastAPI(title="Learning Path Engine")
    app.state.service = service if service is not None else LearningPathService()

    def svc(request: Request) -> LearningPathService:
        return request.app.state.service

    @app.exception_handler(LearningPathError)
    async def learning_error_handler(request: Request, exc: LearningPathError):
        status = STATUS_BY_KIND.get(exc.kind, 500)
        return JSONResponse(exc.to_dict(), status_code=status)

    # -- goals --

    @app.post("/api/goals", status_code=201, response_model=LearningGoal)
    async def create_goal(body: GoalRequest, request: Request):
        return svc(request).create_learning_goal(
            body.title, body.description, body.target_skills, body.difficulty,
            body.estimated_time, body.priority, body.deadline,
        )

    @app.get("/api/goals", response_model=list[LearningGoal])
    async def list_goals(request: Request):
        return svc(request).list_learning_goals()

    @app.get("/api/goals/{goal_id}", response_model=LearningGoal)
    async def get_goal(goal_id: str, request: Request):
        return svc(request).get_learning_goal(goal_id)

    @app.delete("/api/goals/{goal_id}")
    async def delete_goal(goal_id: str, request: Request):
        svc(request).delete_learning_goal(goal_id)
        return {"deleted": True, "goal_id": goal_id}

    @app.post("/api/goals/{goal_id}/path", status_code=201, response_model=LearningPath)
    async def generate_from_stored_goal(goal_id: str, request: Request):
        return svc(request).generate_path_for_goal(goal_id)

    # -- paths --

    @app.post("/api/paths/from-goal", status_code=201, response_model=GeneratedPath)
    async def create_path_from_goal(body: GoalRequest, request: Request):
        service = svc(request)
        goal = service.create_learning_goal(
            body.title, body.description, body.target_skills, body.difficulty,
            body.estimated_time, body.priority, body.deadline,
        )
        path = service.generate_learning_path(goal, created_by=body.created_by)
        return GeneratedPath(goal_id=goal.id, path=path)

    @app.post("/api/paths/from-topic", status_code=201, response_model=LearningPath)
    async def create_path_from_topic(body: TopicPathRequest, request: Request):
        return svc(request).generate_path(body.topic, body.difficulty, body.preferences)

    @app.post("/api/paths", status_code=201, response_model=LearningPath)
    async def import_path(body: PathDraft, request: Request):
        return svc(request).create_path(body)

    @app.get("/api/paths", response_model=list[LearningPath])
    async def list_paths(request: Request):
        return svc(request).list_paths()

    @app.post("/api/paths/search", response_model=list[LearningPath])
    async def search_paths(body: SearchRequest, request: Request):
        return svc(request).search_paths(body.query, body.filters)

    @app.get("/api/paths/{path_id}", response_model=LearningPath)
    async def get_path(path_id: str, request: Request):
        return svc(request).get_path(path_id)

    @app.patch("/api/paths/{path_id}", response_model=LearningPath)
    async def update_path(path_id: str, body: PathUpdate, request: Request):
        return svc(request).update_path(path_id, body)

    @app.delete("/api/paths/{path_id}")
    async def delete_path(path_id: str, request: Request):
        svc(request).delete_path(path_id)
        return {"deleted": True, "path_id": path_id}

    # -- progress --

    @app.post("/api/paths/{path_id}/start", status_code=201, response_model=LearningProgress)
    async def start_path(path_id: str, body: StartRequest, request: Request):
        return svc(request).start_path(path_id, body.user_id)

    @app.get("/api/paths/{path_id}/progress/{user_id}", response_model=LearningProgress)
    async def get_progress(path_id: str, user_id: str, request: Request):
        return svc(request).get_user_progress(user_id, path_id)

    @app.post("/api/paths/{path_id}/steps/{step_id}/complete", response_model=LearningProgress)
    async def complete_step(path_id: str, step_id: str, body: CompleteStepRequest, request: Request):
        service = svc(request)
        service.complete_step(
            path_id, body.user_id, step_id, body.time_spent, body.rating, body.note
        )
        return service.get_user_progress(body.user_id, path_id)

    @app.get("/api/paths/{path_id}/next-steps", response_model=list[LearningStep])
    async def next_steps(path_id: str, user_id: str, request: Request):
        return svc(request).get_next_steps(path_id, user_id)

    @app.get("/api/paths/{path_id}/recommendations", response_model=LearningRecommendation)
    async def recommendations(path_id: str, user_id: str, request: Request):
        return svc(request).get_learning_recommendations(path_id, user_id)

    # -- stats --

    @app.get("/api/users/{user_id}/stats", response_model=LearningStats)
    async def user_stats(user_id: str, request: Request):
        return svc(request).get_learning_stats(user_id)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    app = create_app(LearningPathService(create_store()))
    logger.info(f"Serving learning path API on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)
