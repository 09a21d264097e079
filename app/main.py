import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.db import init_db
from app.exceptions import DomainException
from routers import auth, bookings, resources, slots

logger = logging.getLogger(__name__)

app = FastAPI(title="Campus Resource Booking API", version="0.1.0")

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(slots.router, prefix="/slots", tags=["slots"])
app.include_router(resources.router, prefix="/resources", tags=["resources"])


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    http_exc = exc.to_http_exception()
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=logging.INFO)
    if os.getenv("SKIP_DB_INIT") == "1":
        return
    init_db()
    logger.info("database_initialized")


@app.get("/")
def root():
    return {"ok": True, "service": "campus-booking-api"}
