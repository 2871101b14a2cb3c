import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnify import config
from learnify.admin.admin_router import router as admin_router
from learnify.auth.auth_router import router as auth_router
from learnify.core.database import create_indexes, db_manager
from learnify.core.errors import register_exception_handlers
from learnify.courses.course_router import router as course_router
from learnify.enrollments.enrollment_router import router as enrollment_router
from learnify.logging_config import setup_logging
from learnify.notes.note_router import router as note_router
from learnify.reviews.review_router import router as review_router
from learnify.system.health_router import router as system_router
from learnify.users.user_router import router as user_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Learnify API", version=config.VERSION or "0.1.0")


@app.on_event("startup")
async def startup_event():
    setup_logging()
    db_manager.connect()
    await create_indexes(db_manager.get_database())
    logger.info("Learnify API started")


@app.on_event("shutdown")
async def shutdown_event():
    db_manager.disconnect()


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router, prefix="/api/auth")
app.include_router(user_router, prefix="/api/users")
app.include_router(course_router, prefix="/api/courses")
app.include_router(enrollment_router, prefix="/api/enrollments")
app.include_router(review_router, prefix="/api/reviews")
app.include_router(note_router, prefix="/api/notes")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(system_router)
# ============================================================
