import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import ExecutionError, NotFoundError, QueryValidationError, SearchError, TranslationError
from app.core.logging_config import setup_logging
from app.core.mongo import close_mongo, connect_mongo
from app.routers.product import router as product_router
from app.routers.search import router as search_router
from app.routers.sessions import router as sessions_router

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

# More specific types first
ERROR_STATUS_CODES: list[tuple[type[SearchError], int]] = [
    (QueryValidationError, 422),
    (TranslationError, 400),
    (NotFoundError, 404),
    (ExecutionError, 502),
    (SearchError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.PRODUCT_STORE == "mongo":
        await connect_mongo()
    else:
        logger.info("Using in-memory product store")
    yield
    # Shutdown
    if settings.PRODUCT_STORE == "mongo":
        await close_mongo()


app = FastAPI(
    title=settings.APP_NAME,
    description="Faceted listing search with load-more and page-based pagination",
    version="1.0.0",
    lifespan=lifespan,
)


async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
    status_code = next(code for error_type, code in ERROR_STATUS_CODES if isinstance(exc, error_type))
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.add_exception_handler(SearchError, search_error_handler)

app.include_router(search_router, prefix="/api/v1")
app.include_router(sessions_router, prefix="/api/v1")
app.include_router(product_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "product_store": settings.PRODUCT_STORE}
