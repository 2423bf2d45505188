from fastapi import APIRouter

from thinning.api.routes import auth, measurements

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(measurements.router, tags=["measurements"])
