"""
FastAPI application for Storage Gift Service
"""
from fastapi import FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from .config import settings
from .cache import usage_cache, get_usage_cache, UsageCache
from .infrastructure.neynar_client import neynar_client, get_neynar_client, NeynarClient
from .domain.models import Navigation
from .exceptions import GiftServiceException
from .service import SelectionService, build_selection_service
from .schemas import AccountResponse, ErrorResponse, SelectionResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Uh oh, something went wrong!"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Storage Gift Service...")

    await usage_cache.connect()
    logger.info(f"Usage cache initialized ({settings.USAGE_CACHE_BACKEND})")

    await neynar_client.start()

    logger.info(f"Storage Gift Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Storage Gift Service...")

    await neynar_client.stop()
    await usage_cache.disconnect()

    logger.info("Storage Gift Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Finds followed accounts that are low on storage and ranks them as gift candidates",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GiftServiceException)
async def gift_service_exception_handler(request: Request, exc: GiftServiceException):
    logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status,
        content=ErrorResponse(code=exc.code, message=GENERIC_FAILURE_MESSAGE).model_dump(),
    )


# Helper function to get service instance
def get_selection_service(
    client: NeynarClient = Depends(get_neynar_client),
    cache: UsageCache = Depends(get_usage_cache),
) -> SelectionService:
    """Get SelectionService instance with dependencies"""
    return build_selection_service(client, cache)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get(
    "/api/v1/gift/{account_id}/candidate",
    response_model=SelectionResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Gift"],
    summary="Get the followed account most in need of storage",
)
async def select_candidate(
    account_id: int,
    navigation: Optional[Navigation] = Query(None, description="Move to the next or previous candidate"),
    cursor: Optional[str] = Query(None, description="Cursor from the previous response"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Candidates per page"
    ),
    service: SelectionService = Depends(get_selection_service),
):
    """
    Select a gift candidate

    - Followed accounts are ranked by remaining storage, lowest first
    - Pass back the returned cursor with navigation=next or navigation=back to page
    """
    selection = await service.select_candidate(
        account_id, navigation=navigation, page_size=page_size, cursor=cursor
    )
    return SelectionResponse.from_selection(selection)


@app.get(
    "/api/v1/gift/accounts/{account_id}",
    response_model=AccountResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Accounts"],
    summary="Get account display information",
)
async def get_account(
    account_id: int,
    service: SelectionService = Depends(get_selection_service),
):
    """Get display name, handle and avatar of an account"""
    account = await service.lookup_account(account_id)
    return AccountResponse.from_domain(account)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gift_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
