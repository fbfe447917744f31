from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from exam_portal.core.config import settings
from exam_portal.db.exam_db import ensure_indexes
import logging

logger = logging.getLogger(__name__)

class MongoDB:
    client: AsyncIOMotorClient = None

mongodb = MongoDB()

async def connect_to_mongo():
    """Connect to MongoDB, test the connection and create indexes"""
    try:
        mongodb.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
        # Test connection
        await mongodb.client.admin.command('ping')
        logger.info(f"✓ Connected to MongoDB at {settings.mongodb_url}")
    except Exception as e:
        logger.error(f"✗ Failed to connect to MongoDB: {e}")
        raise

    await ensure_indexes(get_database())

async def close_mongo_connection():
    """Close MongoDB connection"""
    if mongodb.client:
        mongodb.client.close()
        logger.info("✓ Closed MongoDB connection")

def get_database() -> AsyncIOMotorDatabase:
    """Get the database instance"""
    return mongodb.client[settings.database_name]

async def ping_database() -> bool:
    """True when MongoDB answers a ping"""
    if mongodb.client is None:
        return False
    try:
        await mongodb.client.admin.command('ping')
        return True
    except Exception as e:
        logger.error(f"✗ MongoDB ping failed: {e}")
        return False
