from fastapi import FastAPI
from linksnap_app.config import settings
from linksnap_app.logging_config import setup_logging
from linksnap_app.database.connection import engine, Base
from linksnap_app.api.v1 import auth, dashboard, redirect, urls

# Import models to ensure they're registered with Base
from linksnap_app.models import ShortURL, User, UserSession

setup_logging(settings.log_level)

# The local backend owns its tables; a hosted backend has its own schema
if settings.backend == "sqlalchemy":
    Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shorten one URL per account, track its clicks, share it as a QR code",
    debug=settings.debug
)


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment, "backend": settings.backend}


######## Include routers
app.include_router(dashboard.router)
app.include_router(auth.router)
app.include_router(urls.router, prefix="/api/v1")
# Catch-all /{short_code} goes last
app.include_router(redirect.router)
