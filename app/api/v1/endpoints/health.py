from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db import database
from app.db.database import get_db
from app.schemas.health import HealthCheckResponse
from app.services import geocoding_service
from app.services.location_screen import LocationScreen, get_location_screen

router = APIRouter()


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    screen: LocationScreen = Depends(get_location_screen),
) -> HealthCheckResponse:
    """
    Comprehensive health check endpoint that verifies:
    - Database connectivity
    - Geocoding API availability
    - Location subscription state (informational)

    Returns 200 if all services are healthy, 503 if any service is down.
    """
    database_health = database.health_check(db)
    geocoding_service_health = await geocoding_service.geocoding_service.health_check()
    location_health = screen.health_check()

    overall_healthy = all([database_health.healthy, geocoding_service_health.healthy])

    response = HealthCheckResponse(
        service="location-app-backend",
        version=settings.VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        healthy=overall_healthy,
        database=database_health,
        geocoding_service=geocoding_service_health,
        location_updates=location_health,
    )

    if overall_healthy:
        return response
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response.model_dump()
    )
