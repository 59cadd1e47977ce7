# college_erp/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import sys
import time
import psutil

from college_erp.core.database import test_connection, init_db, AsyncSessionLocal
from college_erp.core.config import settings
from college_erp.core.hierarchy import validate_hierarchy
from college_erp.core.rate_limiter import limiter
from college_erp.services.auth_service import get_user_by_email, create_user
from college_erp.services.request_manager import RequestManager
from college_erp.models.user import UserRole

# Routers
from college_erp.api.endpoints import (
    auth as auth_router,
    users as users_router,
    hierarchy as hierarchy_router,
    requests as requests_router,
    jobs as jobs_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="College ERP Request Routing Backend",
    version="1.0.0",
    description="Hierarchical request routing, approval and escalation for college staff and students.",
)

START_TIME = time.time()
DB_STATUS = "Connecting..."

# ------------------------------------------------------------
# RATE LIMITING
# ------------------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ------------------------------------------------------------
# REQUEST MANAGER (one per process, shared by all handlers)
# ------------------------------------------------------------
app.state.request_manager = RequestManager(
    AsyncSessionLocal,
    default_max_response_time=settings.DEFAULT_MAX_RESPONSE_HOURS,
)


# ------------------------------------------------------------
# METRICS API
# ------------------------------------------------------------
@app.get("/api/metrics", tags=["System"])
async def metrics():
    uptime_seconds = int(time.time() - START_TIME)
    cpu_usage = psutil.cpu_percent(interval=None)
    ram_usage = psutil.virtual_memory().percent
    try:
        disk_usage = psutil.disk_usage('/').percent
    except OSError:
        disk_usage = 0

    # Database health & latency
    db_start = time.time()
    db_latency = 0
    try:
        await test_connection()
        current_db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except Exception:
        logger.exception("Metrics DB ping failed.")
        current_db_status = "Error"

    return {
        "status": "Online",
        "version": app.version,
        "cpu": cpu_usage,
        "ram": ram_usage,
        "disk": disk_usage,
        "uptime": uptime_seconds,
        "database": current_db_status,
        "db_latency": db_latency,
    }


# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "*"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(hierarchy_router.router)
app.include_router(requests_router.router)
app.include_router(jobs_router.router)


# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    global DB_STATUS
    logger.info("🚀 Starting College ERP Request Routing Backend...")

    # 1) Static role tables sanity check
    for problem in validate_hierarchy():
        logger.warning(f"Hierarchy config: {problem}")

    # 2) Database connection test
    try:
        await test_connection()
        DB_STATUS = "Connected"
        logger.success("Database connection established.")
    except Exception:
        DB_STATUS = "Error"
        logger.exception("Startup aborted: Database connection failed.")

    # 3) Initialize database tables
    if DB_STATUS == "Connected":
        try:
            await init_db()
            logger.success("Database tables ready.")
        except Exception as e:
            logger.warning(f"Table initialization encountered an issue: {e}")

    # 4) Seed Super Admin
    if DB_STATUS == "Connected":
        try:
            async with AsyncSessionLocal() as session:
                if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
                    logger.warning("Missing Super Admin credentials in settings.")
                else:
                    existing = await get_user_by_email(session, settings.SUPER_ADMIN_EMAIL)
                    if not existing:
                        logger.info(f"Seeding Super Admin: {settings.SUPER_ADMIN_EMAIL}")
                        await create_user(
                            session=session,
                            name=settings.SUPER_ADMIN_NAME or "Super Admin",
                            email=settings.SUPER_ADMIN_EMAIL,
                            password=settings.SUPER_ADMIN_PASSWORD,
                            role=UserRole.Admin,
                        )
                        logger.success("Super Admin created successfully.")
                    else:
                        logger.info("Super Admin already exists. Skipping.")
        except Exception:
            logger.exception("Super Admin seeding failed.")

    logger.success("Backend startup completed.")


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "College ERP Request Routing Backend",
        "version": app.version,
        "message": "Backend running successfully 🚀",
    }
