"""MongoDB connection settings and client lifecycle."""
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.collection import Collection

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    mongodb_url: str = "mongodb://localhost:27017"
    database_name: str = "hotel"
    rooms_collection: str = "hotel"
    timeout_ms: int = 5000
    save_retries: int = 5
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            mongodb_url=os.getenv("MONGODB", cls.mongodb_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            rooms_collection=os.getenv("ROOMS_COLLECTION", cls.rooms_collection),
            timeout_ms=int(os.getenv("MONGODB_TIMEOUT_MS", cls.timeout_ms)),
            save_retries=int(os.getenv("RESERVATION_SAVE_RETRIES", cls.save_retries)),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def connect(settings: Settings) -> MongoClient:
    # timeoutMS bounds every operation issued through this client
    client = MongoClient(
        settings.mongodb_url,
        tz_aware=True,
        timeoutMS=settings.timeout_ms,
        serverSelectionTimeoutMS=settings.timeout_ms,
    )
    logger.info("MongoDB client ready for database %r", settings.database_name)
    return client


def rooms_collection(client: MongoClient, settings: Settings) -> Collection:
    return client[settings.database_name][settings.rooms_collection]


def close(client: MongoClient) -> None:
    client.close()
    logger.info("Closed MongoDB connection")
