from field_dispatch.api.api_v1.endpoints import admin, evidence, jobs

__all__ = [
    "admin",
    "evidence",
    "jobs",
]
