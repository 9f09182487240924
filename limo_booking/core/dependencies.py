from fastapi import Depends, Request
from sqlalchemy.orm import Session

from limo_booking.db.session import SessionLocal
from limo_booking.db.repository import BookingRepository
from limo_booking.services.booking_lifecycle import BookingLifecycleManager
from limo_booking.services.payments import PaymentReconciler
from limo_booking.services.vehicle_catalog import VehicleCatalog
from limo_booking.utils.pricing import PricingEngine


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> BookingRepository:
    return BookingRepository(db)


def get_engine(request: Request) -> PricingEngine:
    return request.app.state.pricing_engine


def get_catalog(
    request: Request,
    repository: BookingRepository = Depends(get_repository),
) -> VehicleCatalog:
    return VehicleCatalog(repository, request.app.state.pricing_engine.pricing)


def get_lifecycle(
    request: Request,
    repository: BookingRepository = Depends(get_repository),
    catalog: VehicleCatalog = Depends(get_catalog),
) -> BookingLifecycleManager:
    return BookingLifecycleManager(
        repository,
        engine=request.app.state.pricing_engine,
        notifier=request.app.state.notifier,
        catalog=catalog,
    )


def get_reconciler(
    request: Request,
    lifecycle: BookingLifecycleManager = Depends(get_lifecycle),
) -> PaymentReconciler:
    return PaymentReconciler(lifecycle, request.app.state.gateway)


async def get_raw_body(request: Request) -> bytes:
    # Signature verification needs the exact bytes the gateway sent
    return await request.body()
