from fastapi import APIRouter

from field_dispatch.api.api_v1.endpoints import admin, evidence, jobs
from field_dispatch.schemas.common import ErrorResponse

_ERRORS = {status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 409)}

api_router = APIRouter(responses=_ERRORS)
api_router.include_router(jobs.router, tags=["jobs"])
api_router.include_router(evidence.router, tags=["evidence"])
api_router.include_router(admin.router, tags=["admin"])
