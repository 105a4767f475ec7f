from fastapi import FastAPI
import logging
from fastapi.middleware.cors import CORSMiddleware
from matchday.core.config import settings
from matchday.core.database import init_db
from matchday.core.exceptions import register_exception_handlers
from matchday.api import api_router
from matchday.core.scheduler import start_scheduler

# Setup logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Matchday API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", settings.ROLE_HEADER],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup():
    init_db()  # Calls Base.metadata.create_all(bind=engine)
    logger.info("✅ Database connected and tables created.")
    if settings.SCHEDULER_ENABLED:
        app.state.scheduler = start_scheduler()
        logger.info("⏰ Scheduler started.")


@app.on_event("shutdown")
async def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/")
async def home():
    return {"message": "Welcome to Matchday API"}

# Include all API routes
app.include_router(api_router)
