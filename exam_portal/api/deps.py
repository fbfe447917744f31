"""
API Dependencies
Database, random source and service providers for the routers
"""
import random

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from exam_portal.core.config import settings
from exam_portal.db.exam_db import ExamStore
from exam_portal.services.analytics_service import AnalyticsService
from exam_portal.services.exam_service import ExamService
from exam_portal.services.question_service import QuestionService


async def get_db() -> AsyncIOMotorDatabase:
    """Dependency to get MongoDB database instance"""
    from exam_portal.db.mongodb import get_database
    return get_database()


def get_rng() -> random.Random:
    """Random source for shuffles; seeded only when SHUFFLE_SEED is configured"""
    return random.Random(settings.shuffle_seed)


def get_store(db: AsyncIOMotorDatabase = Depends(get_db)) -> ExamStore:
    return ExamStore(db)


def get_question_service(store: ExamStore = Depends(get_store)) -> QuestionService:
    return QuestionService(store)


def get_exam_service(
    store: ExamStore = Depends(get_store),
    rng: random.Random = Depends(get_rng)
) -> ExamService:
    return ExamService(store, rng=rng, max_pools=settings.max_pools_per_query)


def get_analytics_service(store: ExamStore = Depends(get_store)) -> AnalyticsService:
    return AnalyticsService(
        store,
        pass_mark=settings.pass_mark,
        trend_window=settings.trend_window,
        topic_count=settings.analysis_topic_count
    )
