from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from field_dispatch.api.api_v1.router import api_router
from field_dispatch.core.config import settings
from field_dispatch.core.logging import configure_logging
from field_dispatch.db.init_db import init_db


app = FastAPI(
    title=settings.app_name,
    default_response_class=ORJSONResponse,
    openapi_url=f"{settings.api_v1_str}/openapi.json",
)
app.include_router(api_router, prefix=settings.api_v1_str)


@app.on_event("startup")
async def startup_event() -> None:
    configure_logging()
    await init_db()


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "environment": settings.environment}


@app.get("/")
async def root() -> dict:
    return {
        "service": settings.app_name,
        "api": settings.api_v1_str,
        "object_store": settings.object_store_backend,
        "features": {
            "payouts": settings.feature_enable_payouts,
            "notifications": settings.feature_enable_notifications,
        },
    }


def run() -> None:
    import uvicorn

    uvicorn.run("field_dispatch.main:app", host=settings.api_host, port=settings.api_port, reload=settings.environment == "dev")
