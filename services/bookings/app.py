from contextlib import asynccontextmanager
from datetime import date, datetime
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from spacerental.booking import (
    BookingService,
    BookingStore,
    JsonFileBookingBackend,
    Outcome,
    ServiceResult,
    SqlAlchemyBookingBackend,
    StatusPromotionScheduler,
)
from spacerental.booking.errors import ErrorCode
from spacerental.config import Settings, get_settings
from spacerental.database import Base, SessionLocal, engine
from spacerental.dependencies import get_booking_service, get_current_user_id
from spacerental.logging_middleware import add_audit_middleware, get_event_logger, log_event
from spacerental.models import BookingStatus
from spacerental.rate_limit import apply_rate_limiter, limiter, write_limit
from spacerental.rooms import RoomCatalog
from spacerental.schemas import Booking, BookingCreate, BookingExtend, BookingItemsAdd, ErrorBody, OccupancyStats

settings = get_settings()
logger = get_event_logger("bookings")

_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ROOM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ROOM_NOT_AVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.SERVER_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def build_store(config: Settings) -> BookingStore:
    if config.booking_store_backend == "json":
        return BookingStore(JsonFileBookingBackend(config.bookings_json_path))
    return BookingStore(SqlAlchemyBookingBackend(SessionLocal))


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    store = build_store(settings).open()
    fastapi_app.state.booking_service = BookingService(store, RoomCatalog(SessionLocal), logger=logger)
    scheduler = StatusPromotionScheduler(store, interval=settings.status_update_interval_seconds, logger=logger)
    fastapi_app.state.scheduler = scheduler
    if settings.scheduler_enabled:
        scheduler.start()
    try:
        yield
    finally:
        scheduler.stop()
        if store.is_open:
            store.close()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log_event(logger, logging.WARNING, "Request validations not met", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"errors": jsonable_errors(exc), "code": ErrorCode.VALIDATION_ERROR.value},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()]


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "bookings")
    fastapi_app.add_exception_handler(RequestValidationError, validation_error_handler)
    Instrumentator().instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


def error_response(status_code: int, message: str, code: ErrorCode) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorBody(error=message, code=code.value).model_dump())


def respond(result: ServiceResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.outcome is Outcome.OK:
        if isinstance(result.value, list):
            content = [item.model_dump(mode="json") for item in result.value]
        else:
            content = result.value.model_dump(mode="json")
        return JSONResponse(status_code=success_status, content=content)
    code = result.code or ErrorCode.SERVER_ERROR
    return error_response(_STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST), result.message or code.value, code)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


@app.post("/bookings", response_model=Booking, status_code=status.HTTP_201_CREATED)
@limiter.limit(write_limit)
def create_booking(
    request: Request,
    booking_in: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    result = service.create_booking(
        user_id=user_id,
        room_id=booking_in.room_id,
        start_time=booking_in.start_time,
        hours=booking_in.hours,
        services=booking_in.services,
        products=booking_in.products,
    )
    return respond(result, status.HTTP_201_CREATED)


@app.get("/bookings/my-bookings", response_model=List[Booking])
def my_bookings(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    return respond(service.bookings_for_user(user_id))


@app.get("/bookings/stats/occupancy", response_model=OccupancyStats)
@limiter.limit("30/minute")
def occupancy_stats(
    request: Request,
    room_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    _: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    return respond(service.occupancy_stats(room_id, start_date, end_date))


@app.get("/bookings", response_model=List[Booking])
def list_bookings(
    request: Request,
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    day: Optional[date] = Query(None, alias="date"),
    _: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    if booking_status is not None:
        return respond(service.bookings_by_status(booking_status))
    if day is not None:
        return respond(service.bookings_by_date(day))
    return error_response(status.HTTP_400_BAD_REQUEST, "Provide a status or a date filter", ErrorCode.MISSING_PARAMS)


@app.post("/bookings/{booking_id}/cancel", response_model=Booking)
@limiter.limit(write_limit)
def cancel_booking(
    request: Request,
    booking_id: str,
    _: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    return respond(service.cancel_booking(booking_id))


@app.post("/bookings/{booking_id}/extend", response_model=Booking)
@limiter.limit(write_limit)
def extend_booking(
    request: Request,
    booking_id: str,
    extension: BookingExtend,
    _: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    return respond(service.extend_booking(booking_id, extension.additional_hours))


@app.post("/bookings/{booking_id}/items", response_model=Booking)
@limiter.limit(write_limit)
def add_booking_items(
    request: Request,
    booking_id: str,
    items: BookingItemsAdd,
    _: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> JSONResponse:
    return respond(service.add_items(booking_id, services=items.services, products=items.products))


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.bookings_service_port)
