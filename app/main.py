import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.routing import APIRoute
from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationFailure
from app.api import (
    activities,
    allocations,
    assessments,
    certificates,
    completion,
    compliance,
    cpd_records,
    credits,
    rule_packs,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="CPD/CE credit eligibility and compliance resolution engine",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(activities.router)
app.include_router(credits.router)
app.include_router(assessments.router)
app.include_router(compliance.router)
app.include_router(completion.router)
app.include_router(certificates.router)
app.include_router(allocations.router)
app.include_router(rule_packs.router)
app.include_router(cpd_records.router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=400, content={"detail": exc.message, "field": exc.field}
    )


@app.get("/routes-simple", response_class=PlainTextResponse)
async def get_routes_simple():
    """
    Returns a concise list of all routes with their paths and methods.
    """
    routes = []
    for route in app.routes:
        if isinstance(route, APIRoute):
            methods = ", ".join(sorted(route.methods))
            routes.append(f"{methods}: {route.path}")

    return "\n".join(routes)


@app.get("/")
async def root():
    return {
        "message": "CPD Credit Engine API",
        "version": settings.api_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    from app.core.database import init_db

    init_db()
    uvicorn.run(app, host="0.0.0.0", port=8000)
