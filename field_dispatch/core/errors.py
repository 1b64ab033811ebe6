from fastapi import HTTPException


def api_error(status_code: int, code: str, message: str, detail: dict | None = None, hint: str | None = None) -> HTTPException:
    payload = {
        "code": code,
        "message": message,
        "detail": detail or {},
        "hint": hint,
    }
    return HTTPException(status_code=status_code, detail=payload)


def not_found(entity: str, detail: dict | None = None) -> HTTPException:
    code = entity.lower().replace(" ", "_") + "_not_found"
    return api_error(404, code, f"{entity} not found", detail)


def forbidden(message: str = "Access denied", detail: dict | None = None) -> HTTPException:
    return api_error(403, "forbidden", message, detail)


def unauthenticated(message: str = "Authentication required") -> HTTPException:
    return api_error(401, "unauthenticated", message)


def invalid_transition(current: str, requested: str, message: str | None = None) -> HTTPException:
    return api_error(
        400,
        "invalid_transition",
        message or f"Invalid status transition: {current} -> {requested}",
        {"current_status": current, "requested_status": requested},
    )


def conflict(message: str, detail: dict | None = None) -> HTTPException:
    return api_error(409, "conflict", message, detail, hint="Reload the resource and retry")


def validation_failure(message: str, detail: dict | None = None) -> HTTPException:
    return api_error(422, "validation_failure", message, detail)


def error_code(exc: HTTPException) -> str:
    if isinstance(exc.detail, dict):
        return str(exc.detail.get("code", "error"))
    return "error"


def error_message(exc: HTTPException) -> str:
    if isinstance(exc.detail, dict):
        return str(exc.detail.get("message", ""))
    return str(exc.detail)
