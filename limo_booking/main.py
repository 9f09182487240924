from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from limo_booking.api.routes import bookings, payments, vehicles
from limo_booking.core.exceptions import BookingError
from limo_booking.services.gateway import build_gateway_from_env
from limo_booking.services.notifier import ResendNotifier
from limo_booking.utils.pricing import PricingEngine

# ⭐ Import logging system
from limo_booking.core.logging_config import get_logger

logger = get_logger()


def create_app(gateway=None, notifier=None, pricing_engine=None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Bad gateway credentials stop the process here, not on the first checkout
        if app.state.gateway is None:
            app.state.gateway = build_gateway_from_env()
        if app.state.notifier is None:
            app.state.notifier = ResendNotifier()
        logger.info("Limo booking API started")
        yield

    app = FastAPI(
        title="Limo Booking API",
        version="1.0.0",
        description="API for vehicle quotes, bookings and payments",
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.notifier = notifier
    app.state.pricing_engine = pricing_engine or PricingEngine()

    # ⭐ Request Logging Middleware
    @app.middleware("http")
    async def log_requests(request, call_next):
        logger.info(f"REQUEST: {request.method} {request.url}")

        try:
            response = await call_next(request)
            logger.info(f"RESPONSE: {response.status_code} {request.url}")
            return response

        except Exception as e:
            logger.error(f"ERROR: {request.url} -> {str(e)}")
            raise e

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {request.url} -> {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    # ⭐ CORS (important for frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(vehicles.router)
    app.include_router(bookings.router)
    app.include_router(payments.router)

    @app.get("/", tags=["Root"])
    def root():
        return {"message": "Backend running successfully"}

    return app


app = create_app()
