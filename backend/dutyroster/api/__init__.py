from fastapi import APIRouter
from .routes import roster_planning

api_router = APIRouter()

# Protected endpoints (ADMIN или PLANNER)
api_router.include_router(roster_planning.router, prefix="/roster/planning", tags=["roster-planning"])
