from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import os

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()


class ComplianceApiSettings(BaseSettings):
    """Settings for the external analysis / knowledge endpoints."""
    base_url: str = "http://localhost:5000"
    request_timeout: float = 30.0 # Seconds per remote call; no call is left unbounded
    api_key: Optional[str] = None # Sent as X-Api-Key when set

    model_config = SettingsConfigDict(env_prefix='COMPLIANCE_API_')


class AppSettings(BaseSettings):
    log_level: str = "INFO"
    log_json: bool = True
    cors_origins: str = "*" # Comma separated

    model_config = SettingsConfigDict(env_prefix='COMPLIANCE_')

    @property
    def cors_origin_list(self) -> list:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Instantiate settings
api_settings = ComplianceApiSettings()
app_settings = AppSettings()


if __name__ == "__main__":
    # For checking the configuration loading
    print("Compliance API Configuration:")
    print(f"  Base URL: {api_settings.base_url}")
    print(f"  Request timeout: {api_settings.request_timeout}s")
    # API key is intentionally not printed
    print(f"  API key set: {bool(api_settings.api_key)}")
    print("\nApplication Configuration:")
    print(f"  Log level: {app_settings.log_level}")
    print(f"  JSON logs: {app_settings.log_json}")
    print("\nTo override, set environment variables like COMPLIANCE_API_BASE_URL, COMPLIANCE_API_REQUEST_TIMEOUT, COMPLIANCE_LOG_LEVEL.")
