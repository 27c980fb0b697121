from fastapi import APIRouter

from app.api.routes import action_needed, applicants, health, shifts

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(applicants.router, prefix="/clinics", tags=["applicants"])
api_router.include_router(shifts.router, prefix="/clinics", tags=["shifts"])
api_router.include_router(action_needed.router, tags=["action-needed"])
