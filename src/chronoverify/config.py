from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional

CDSE_TOKEN_URL = "https://identity.dataspace.copernicus.eu/auth/realms/CDSE/protocol/openid-connect/token"
CDSE_CATALOGUE_URL = "https://catalogue.dataspace.copernicus.eu/odata/v1/Products"


class Settings(BaseSettings):
    OPENAI_API_KEY: Optional[str] = Field(None, description="OpenAI API Key")
    MODEL_CLUES: str = "gpt-4o"
    MODEL_GEOLOCATE: str = "gpt-4o-search-preview"
    MODEL_STRUCTURE: str = "gpt-4o-mini"
    MODEL_TIMESTAMP: str = "gpt-4o"
    MODEL_REPORT: str = "o3"
    REPORT_REASONING_EFFORT: str = "high"
    STRUCTURED_OUTPUTS: bool = Field(True, description="Use schema-constrained completions; False falls back to free text + JSON repair")

    # Copernicus Data Space credentials (client-credentials grant)
    COPERNICUS_CLIENT_ID: Optional[str] = Field(None, description="Copernicus OAuth2 client id")
    COPERNICUS_CLIENT_SECRET: Optional[str] = Field(None, description="Copernicus OAuth2 client secret")
    COPERNICUS_TOKEN_URL: str = CDSE_TOKEN_URL
    COPERNICUS_CATALOGUE_URL: str = CDSE_CATALOGUE_URL
    SATELLITE_COLLECTION: str = "SENTINEL-2"

    # Proxy server
    HOST: str = "127.0.0.1"
    PORT: int = 3001
    FRONTEND_URL: str = Field("http://localhost:5173", description="Allowed CORS origin")
    BACKEND_API_URL: str = Field("http://localhost:3001", description="Base URL of the credential proxy")

    HTTP_TIMEOUT_SECONDS: float = 30.0
    LLM_TIMEOUT_SECONDS: float = 300.0
    SATELLITE_LOOKBACK_DAYS: int = 30
    SATELLITE_RESULT_LIMIT: int = 5
    TOKEN_EXPIRY_SKEW_SECONDS: int = 30

    # Region-level estimate used when the geolocation output cannot be structured
    FALLBACK_LATITUDE: float = 31.5
    FALLBACK_LONGITUDE: float = 34.45

    LOG_LEVEL: str = "INFO"

    # MLflow settings
    MLFLOW_TRACKING_URI: str = Field("http://127.0.0.1:5000", description="MLflow tracking server URI")
    MLFLOW_ENABLE_TRACING: bool = Field(False, description="Enable MLflow tracing")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def has_copernicus_credentials(self) -> bool:
        return bool(self.COPERNICUS_CLIENT_ID and self.COPERNICUS_CLIENT_SECRET)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
