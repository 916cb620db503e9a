from fastapi import APIRouter

from journeyboard.api.routes import health, journeys, people, stages

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(journeys.router, prefix="/journeys", tags=["journeys"])
api_router.include_router(stages.router, prefix="/journeys/{journey_id}/stages", tags=["stages"])
api_router.include_router(people.router, tags=["people"])
