"""
Main FastAPI application for the HR attendance and leave backend
"""
import logging
from logging.config import dictConfig

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import SupabaseService, get_db
from app.utils.exceptions import register_exception_handlers

# Import API routes
from app.api import auth, users, attendance, leave, dashboard, reports

# Configure logging
dictConfig(settings.get_logging_config())
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="HR Attendance System",
    description="Attendance, leave and user management API backed by Supabase",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_tags=[
        {
            "name": "authentication",
            "description": "Account creation and login",
        },
        {
            "name": "users",
            "description": "User management operations",
        },
        {
            "name": "attendance",
            "description": "Check-in/out, manual and bulk attendance",
        },
        {
            "name": "leave",
            "description": "Leave requests and approvals",
        },
        {
            "name": "dashboard",
            "description": "User and admin dashboards",
        },
        {
            "name": "reports",
            "description": "Attendance exports",
        },
    ]
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Health check endpoint
@app.get("/health")
async def health_check(db: SupabaseService = Depends(get_db)):
    """Health check endpoint for monitoring"""
    try:
        db.get_admin_client().table("users").select("id").limit(1).execute()

        return {
            "status": "healthy",
            "database": "connected",
            "version": "1.0.0"
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")


# Include API routes
for module in (auth, users, attendance, leave, dashboard, reports):
    app.include_router(module.router, prefix=settings.API_PREFIX)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Check configuration on startup"""
    logger.info("Starting HR Attendance System")

    missing = settings.validate_required_settings()
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")

    logger.info("HR Attendance System started successfully")


if __name__ == "__main__":
    import uvicorn

    # Development server
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
