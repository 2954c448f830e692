import os
from pathlib import Path
from typing import Annotated, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .upstream import DEFAULT_TIMEOUT_MS

CANNED_DIR = Path(__file__).resolve().parent / "canned"


class Settings(BaseModel):
    geonames_username: str = ""
    weatherbit_api_key: str = ""
    pixabay_api_key: str = ""
    run_env: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    timeout_ms: Annotated[int, Field(gt=0)] = DEFAULT_TIMEOUT_MS
    cors_origins: List[str] = ["*"]
    canned_dir: Path = CANNED_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        run_env = os.getenv("APP_ENV", "development")
        # Keep test runs quiet unless asked otherwise.
        default_level = "WARNING" if run_env == "test" else "INFO"
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            geonames_username=os.getenv("GEONAMES_USERNAME", ""),
            weatherbit_api_key=os.getenv("WEATHERBIT_API_KEY", ""),
            pixabay_api_key=os.getenv("PIXABAY_API_KEY", ""),
            run_env=run_env,
            host=os.getenv("HOST", "127.0.0.1"),
            port=int(os.getenv("PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", default_level),
            timeout_ms=int(os.getenv("UPSTREAM_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )

    @property
    def is_production(self) -> bool:
        return self.run_env == "production"

    def missing_credentials(self) -> List[str]:
        """Names of the credential variables that are unset or empty."""
        pairs = [
            ("GEONAMES_USERNAME", self.geonames_username),
            ("WEATHERBIT_API_KEY", self.weatherbit_api_key),
            ("PIXABAY_API_KEY", self.pixabay_api_key),
        ]
        return [name for name, value in pairs if not value]
