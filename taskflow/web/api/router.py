from fastapi.routing import APIRouter

from taskflow.auth import endpoints as auth
from taskflow.web.api import monitoring
from taskflow.workflow import endpoints as workflow

api_router = APIRouter()
api_router.include_router(monitoring.router)
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(workflow.router)
