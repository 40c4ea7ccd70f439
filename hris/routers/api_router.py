from fastapi import APIRouter
from hris.routers import cycles, performance

# Centralized API router hub; main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(cycles.router, tags=["SPMS Cycles"])
api_router.include_router(performance.router, tags=["Performance Review"])
