import logging
from contextlib import AsyncExitStack

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from mongoengine import NotUniqueError, OperationError, ValidationError as DocumentValidationError
from pymongo.errors import PyMongoError

from accounts.connections import mongo_lifespan
from accounts.api.user import router as user_router
from accounts.errors import DuplicateEmail, StoreUnavailable, ValidationError
from accounts.utils.config import settings
from accounts.utils.logging import setup_logger


logger = logging.getLogger(__name__)


async def combined_lifespan(app: FastAPI):
    setup_logger()
    logger.info("Starting up", extra={"app_name": settings.app_name, "environment": settings.environment})
    async with AsyncExitStack() as stack:
        await stack.enter_async_context(mongo_lifespan(app))

        yield


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=combined_lifespan)


@app.exception_handler(PyMongoError)
async def store_unavailable_handler(request: Request, exc: PyMongoError):
    logger.error("Store operation failed", extra={"path": request.url.path, "error": type(exc).__name__})
    return await http_exception_handler(request, StoreUnavailable())


@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError):
    # mongoengine wraps driver failures raised by save() and delete()
    if isinstance(exc, NotUniqueError):
        return await http_exception_handler(request, DuplicateEmail())
    logger.error("Store operation failed", extra={"path": request.url.path, "error": type(exc).__name__})
    return await http_exception_handler(request, StoreUnavailable())


@app.exception_handler(DocumentValidationError)
async def document_validation_handler(request: Request, exc: DocumentValidationError):
    detail = [{"loc": [field], "msg": str(error)} for field, error in (exc.to_dict() or {}).items()]
    return await http_exception_handler(request, ValidationError(detail or str(exc)))


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


app.include_router(user_router, prefix="/users", tags=["users"])
