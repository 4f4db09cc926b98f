"""FastAPI application for the catalog service."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from catalogsvc import __version__
from catalogsvc.config import CatalogConfig, configure_logging, get_config
from catalogsvc.dependencies import (
    AppResources,
    build_repository,
    get_discount_engine,
    get_stock_reconciler,
)
from catalogsvc.discount import DiscountEngine
from catalogsvc.exceptions import ContractError
from catalogsvc.models import (
    DiscountCalculationRequest,
    DiscountResult,
    StockImportResponse,
    StockImportRow,
)
from catalogsvc.stock import StockReconciler

logger = logging.getLogger(__name__)


def _rate_limit() -> str:
    return get_config().rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    swallow_errors=True,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Rate limit exceeded handler."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )


async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    """Map domain contract errors to stable API error payload."""
    if exc.status_code >= 500:
        logger.error("Contract error %s: %s", exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
            }
        },
    )


@limiter.exempt
async def health_check() -> Dict[str, Any]:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "service": "catalog-service",
        "version": __version__,
    }


@limiter.limit(_rate_limit)
async def calculate_discount(
    request: Request,
    payload: DiscountCalculationRequest,
    engine: DiscountEngine = Depends(get_discount_engine),
) -> Any:
    """Price a basket and apply category co-occurrence discounts."""
    logger.info("Calculating discount for basket with %d item types.", len(payload.items))
    try:
        result = await run_in_threadpool(engine.calculate, payload.items)
    except ContractError:
        raise
    except Exception as e:
        logger.exception("Discount calculation failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while calculating discounts.",
        )

    if not result.success:
        logger.warning("Discount calculation rejected: %s", result.error_message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=result.model_dump(mode="json", by_alias=True),
        )
    return result


@limiter.limit(_rate_limit)
async def import_stock(
    request: Request,
    rows: List[StockImportRow] = Body(...),
    reconciler: StockReconciler = Depends(get_stock_reconciler),
) -> StockImportResponse:
    """Create or update catalog products from inventory rows."""
    logger.info("Starting stock import for %d items.", len(rows))
    try:
        summary = await run_in_threadpool(reconciler.reconcile, rows)
    except ContractError:
        raise
    except Exception as e:
        logger.exception("Stock import failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred during stock import.",
        )
    return StockImportResponse(message=summary.message)


def create_app(config: Optional[CatalogConfig] = None) -> FastAPI:
    """Build the API app; resources are created on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_config = config or get_config()
        configure_logging(app_config)
        if getattr(app.state, "catalog_resources", None) is None:
            app.state.catalog_resources = AppResources(
                config=app_config,
                repository=build_repository(app_config),
            )
        yield

    app = FastAPI(
        title="Catalog Service",
        description="Stock import reconciliation and basket discount pricing",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=(config or get_config()).get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(ContractError, contract_error_handler)

    app.get("/health")(health_check)
    app.post(
        "/basket/calculate-discount",
        response_model=DiscountResult,
        status_code=status.HTTP_200_OK,
        responses={
            400: {"description": "Unknown product or insufficient stock"},
            422: {"description": "Malformed basket"},
            429: {"description": "Rate limit exceeded"},
            500: {"description": "Internal server error"},
        },
    )(calculate_discount)
    app.post(
        "/stock/import",
        response_model=StockImportResponse,
        status_code=status.HTTP_200_OK,
        responses={
            422: {"description": "Malformed stock rows"},
            429: {"description": "Rate limit exceeded"},
            500: {"description": "Internal server error"},
        },
    )(import_stock)

    return app


app = create_app()


def main() -> None:
    """Run API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "catalogsvc.api:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
