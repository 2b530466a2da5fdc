from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "LocationApp"
    PROJECT_DESCRIPTION: str = "Current location and address lookup"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Database Settings
    DATABASE_URL: str = "sqlite:///./locationapp.db"
    AUTO_CREATE_TABLES: bool = True

    # Location Settings
    LOCATION_PROVIDER: str = "fused"
    LOCATION_PRIORITY: str = "HIGH_ACCURACY"
    LOCATION_UPDATE_INTERVAL_MS: int = 1000
    FUSED_DEVICE_PREFERENCE_FACTOR: float = 5.0

    # Network (IP) location API Settings
    NETWORK_LOCATION_API_URL: str = "http://ip-api.com/json"
    NETWORK_LOCATION_TIMEOUT: float = 5.0
    # ip-api.com allows 45 requests per minute
    NETWORK_LOCATION_MIN_INTERVAL_MS: int = 2000

    # Geocoder API Settings
    GEOCODER_API_URL: str = "https://nominatim.openstreetmap.org"
    GEOCODER_USER_AGENT: str = "LocationApp/0.1"
    GEOCODER_LANGUAGE: str = "en"
    GEOCODER_TIMEOUT: float = 10.0
    GEOCODER_MAX_RESULTS: int = 1
    ADDRESS_NOT_FOUND: str = "Address not found!"

    class ConfigDict:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
