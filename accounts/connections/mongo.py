import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import certifi
from fastapi import FastAPI
from mongoengine import connect, disconnect

from accounts.utils.config import settings


logger = logging.getLogger(__name__)


def init_mongo() -> None:
    options = {"tz_aware": True}
    if settings.mongo_scheme == "mongodb+srv":
        # Atlas clusters only speak TLS
        options["tlsCAFile"] = certifi.where()
    connect(host=settings.mongo_uri, alias="default", **options)
    logger.info("Connected to MongoDB", extra={"mongo_db": settings.mongo_db, "mongo_host": settings.mongo_host})


def close_mongo() -> None:
    disconnect(alias="default")


@asynccontextmanager
async def mongo_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_mongo()
    try:
        yield
    finally:
        close_mongo()
