# app/db/mongo.py
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from app.core.config import settings
from app.core.logger import logger


client = AsyncIOMotorClient(
    settings.MONGODB_URI,
    serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
)
db = client[settings.MONGODB_DB]

# Collections
messages_collection = db.get_collection("messages")


# Function to check DB connection
async def verify_mongodb_connection():
    try:
        await client.server_info()
        logger.info("✅ MongoDB connection established")
    except Exception as e:
        logger.error(f"❌ MongoDB connection failed: {str(e)}")

async def get_messages_collection() -> AsyncIOMotorCollection:
    return messages_collection
