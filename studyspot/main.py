import asyncio

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .admin_routes import router as admin_router
from .config import EXPIRY_SWEEP_ENABLED, RABBIT_URL
from .consumer import start_consumer
from .errors import BookingError
from .expiry_worker import expiry_loop
from .logger import logger
from .middleware import RequestLoggingMiddleware
from .publisher import publisher
from .routes import router

app = FastAPI(title="StudySpot Booking Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)
app.include_router(admin_router)

_consumer_conn = None
_stop_event = asyncio.Event()
_expiry_task = None


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.get("/health")
async def health():
    return {"status": "ok", "service": "studyspot", "events_enabled": publisher.enabled}


@app.on_event("startup")
async def startup():
    global _consumer_conn, _expiry_task
    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing: %s", e)

    # notification consumer must not take the API down with it
    try:
        if RABBIT_URL:
            _consumer_conn = await start_consumer(RABBIT_URL)
    except Exception as e:
        _consumer_conn = None
        logger.error("notification consumer failed to start: %s", e)

    if EXPIRY_SWEEP_ENABLED:
        _expiry_task = asyncio.create_task(expiry_loop(_stop_event))


@app.on_event("shutdown")
async def shutdown():
    global _consumer_conn, _expiry_task
    _stop_event.set()
    if _expiry_task:
        try:
            await _expiry_task
        except Exception as e:
            logger.warning("expiry task ended with error: %s", e)
    try:
        if _consumer_conn and not _consumer_conn.is_closed:
            await _consumer_conn.close()
    except Exception as e:
        logger.warning("closing consumer connection failed: %s", e)
    try:
        await publisher.close()
    except Exception as e:
        logger.warning("closing publisher failed: %s", e)
