"""
FastAPI Application Entry Point - Storefront Service
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from storefront.config import settings
from storefront.database import init_db
from storefront.errors import ConfigurationError
from storefront.logging_config import configure_logging
from storefront.api import admin, health, inventory, orders, payments, pricing, reviews

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("storefront.main")

# Create FastAPI application
app = FastAPI(
    title="Storefront Service",
    description="Book storefront: orders, payments, stock, discounts and reviews",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(pricing.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(reviews.router)
app.include_router(inventory.router)
app.include_router(admin.router)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.critical("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"success": False, "message": str(exc), "error": exc.error_code}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "An unexpected error occurred. Please try again.",
            "error": "internal"
        }
    )


@app.on_event("startup")
def startup_event():
    """Initialize database on startup"""
    logger.info("Starting %s...", settings.SERVICE_NAME)
    init_db()
    logger.info("✓ Database initialized")
    try:
        gateway = settings.gateway_config()
        logger.info("✓ Payment gateway: %s", gateway.base_url)
    except ConfigurationError as e:
        logger.warning("✗ %s; prepaid orders will be refused", e)
    if not settings.ADMIN_PASSCODE:
        logger.warning("✗ ADMIN_PASSCODE not set; admin endpoints are disabled")
    logger.info("✓ RabbitMQ URL: %s", settings.RABBITMQ_URL)
    logger.info("✓ %s is running on port %s", settings.SERVICE_NAME, settings.SERVICE_PORT)


@app.on_event("shutdown")
def shutdown_event():
    """Cleanup on shutdown"""
    logger.info("Shutting down %s...", settings.SERVICE_NAME)
