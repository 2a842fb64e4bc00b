import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coachbook.core.config import settings
from coachbook.core.logging import configure_logging
from coachbook.routers.admin_availability import router as admin_availability_router
from coachbook.routers.auth import router as auth_router
from coachbook.routers.booking import router as booking_router

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Coaching Booking API")

# Comma-separated list, e.g.:
# CORS_ORIGINS="http://localhost:3000,https://coaching.example.com"
allow_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

# Safe fallback for local dev if env var not set
if not allow_origins:
  allow_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
  ]

app.add_middleware(
  CORSMiddleware,
  allow_origins=allow_origins,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(booking_router, prefix="/booking", tags=["booking"])
app.include_router(admin_availability_router, prefix="/admin/availability", tags=["admin-availability"])

logger.info("Booking timezone: %s", settings.booking_timezone)

@app.get("/health")
def health():
  return {"status": "ok"}
