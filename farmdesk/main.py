# Main application file



import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from farmdesk.database import SessionLocal
from farmdesk.core.rate_limiter import limiter
from farmdesk.core.config import settings
from farmdesk.repositories.sale_store import SqlAlchemySaleStore
from farmdesk.services.sale_finalization import (
    CustomerNotFound,
    EmptyCart,
    FinalizationTimeout,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    SaleFinalizationError,
    SaleFinalizationService,
    UnexpectedStorageFailure,
)
from farmdesk.routers import (
    auth,
    users,
    categories,
    customers,
    products,
    sales,
    harvests,
    losses,
    settlement,
    reports,
    history,
)


# LOGGING CONFIGURATION

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger("app")


# APP INIT

app = FastAPI(
    title="FarmDesk API",
    description="Farm back office: catalog, point of sale, harvests, losses and settlement",
    version="1.0.0",
)

# One finalization service per process, shared by every request
app.state.sale_finalizer = SaleFinalizationService(SqlAlchemySaleStore(SessionLocal))


# CORS (cookie auth needs credentials)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# RATE LIMITING

app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    _rate_limit_exceeded_handler
)


# SALE FINALIZATION ERRORS

SALE_ERROR_STATUS = {
    EmptyCart: 400,
    InvalidQuantity: 400,
    CustomerNotFound: 404,
    ProductNotFound: 404,
    InsufficientStock: 409,
    FinalizationTimeout: 503,
    UnexpectedStorageFailure: 500,
}


@app.exception_handler(SaleFinalizationError)
async def sale_finalization_error_handler(request: Request, exc: SaleFinalizationError):
    return JSONResponse(
        status_code=SALE_ERROR_STATUS.get(type(exc), 400),
        content={
            "success": False,
            "code": exc.code,
            "message": exc.message,
        },
    )


# REQUEST LOGGING MIDDLEWARE

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)

    logger.info(
        f"{request.method} {request.url.path} "
        f"Status: {response.status_code} "
        f"Time: {duration}ms"
    )

    return response


# ROUTERS

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(categories.router)
app.include_router(customers.router)
app.include_router(products.router)
app.include_router(sales.router)
app.include_router(harvests.router)
app.include_router(losses.router)
app.include_router(settlement.router)
app.include_router(reports.router)
app.include_router(history.router)



# HEALTH

@app.get("/health")
def health():
    logger.info("Health check endpoint called")
    return {"status": "ok", "service": "farmdesk"}
