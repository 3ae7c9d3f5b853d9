import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from biztech.api.v1.router import router as v1_router
from biztech.core.config import settings
from biztech.core.errors import DomainError
from biztech.core.telemetry import setup_telemetry
from biztech.schemas.common import ErrorResponse

logging.basicConfig(level=settings.log_level)
log = logging.getLogger(__name__)

app = FastAPI(title="Biztech Marketplace API", version="0.1.0")


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = ErrorResponse(code=exc.code, message=exc.message, details=exc.details)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        log.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    body = ErrorResponse(code="validation_error", message="Request validation failed", details=details)
    return JSONResponse(status_code=422, content=body.model_dump())


setup_telemetry(app)
app.include_router(v1_router)
