"""
FastAPI Main Application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from portal.core.config import settings
from portal.core.database import SessionLocal, check_db_connection, init_db
from portal.core.security import ensure_default_admin
from portal.api.v1 import (
    accommodations, admin, auth, bookings, destinations, expenses,
    export, family_members, misc, parts, reports, search, tours,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="API for pilgrimage tours, bookings, expenses, accommodations and group rosters"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============= Error responses =============

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # dict details already carry a message plus extra fields
    body = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


# ============= Application events =============

@app.on_event("startup")
async def startup_event():
    logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.APP_ENV}")

    if check_db_connection():
        logger.info("✅ Database connected")
    else:
        logger.warning("⚠️  Database unavailable")

    try:
        init_db()
        db = SessionLocal()
        try:
            ensure_default_admin(db)
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Database initialisation failed: {e}")

    logger.info("✅ Application started")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Shutting down")


# ============= Routers =============

for module in (auth, tours, bookings, expenses, accommodations, misc, parts,
               destinations, admin, reports, export, search, family_members):
    app.include_router(module.router, prefix="/api")

# the member dashboard calls the family-member endpoints under /api/auth as well
app.include_router(family_members.router, prefix="/api/auth")


# ============= Basic endpoints =============

@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
@app.get("/api/health")
async def health_check():
    """Health check for monitoring"""
    db_ok = check_db_connection()

    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "version": settings.APP_VERSION
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portal.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
