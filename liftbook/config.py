"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("liftbook.config")


class Settings(BaseSettings):
    # Booking store
    store_backend: str = "memory"  # "memory" or "firestore"
    google_service_account_json: str = ""
    firestore_project_id: str = ""
    firestore_database: str = "(default)"
    firestore_collection: str = "lift_bookings"

    # Calendar
    calendar_timezone: str = "Australia/Sydney"
    max_visible_per_day: int = 2
    feed_poll_seconds: float = 5.0

    # Booking rules (resident guidelines)
    min_floor: int = 1
    max_floor: int = 60
    min_duration_minutes: int = 30
    max_duration_minutes: int = 120
    duration_step_minutes: int = 30
    advance_days: int = 7

    # Admin auth
    admin_api_key: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {
        "env_prefix": "LIFTBOOK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []
        _placeholders = {"path/to/service-account.json", "my-project"}

        if self.store_backend not in ("memory", "firestore"):
            raise ValueError(
                f"LIFTBOOK_STORE_BACKEND must be 'memory' or 'firestore', "
                f"got {self.store_backend!r}."
            )

        if self.store_backend == "firestore":
            if (
                not self.google_service_account_json
                or self.google_service_account_json in _placeholders
            ):
                raise ValueError(
                    "LIFTBOOK_GOOGLE_SERVICE_ACCOUNT_JSON is missing or still a "
                    "placeholder. Set it in .env to use the Firestore store."
                )
            if not self.firestore_project_id or self.firestore_project_id in _placeholders:
                raise ValueError(
                    "LIFTBOOK_FIRESTORE_PROJECT_ID is missing. Set it in .env."
                )
        else:
            warnings.append(
                "Using the in-memory booking store; bookings are lost on restart."
            )

        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError("min_duration_minutes exceeds max_duration_minutes.")

        if self.max_visible_per_day < 0:
            raise ValueError("max_visible_per_day cannot be negative.")

        # Admin API key: warn if unset
        if not self.admin_api_key:
            if self.debug:
                warnings.append(
                    "LIFTBOOK_ADMIN_API_KEY not set. Admin APIs are open (DEBUG=true)."
                )
            else:
                warnings.append(
                    "LIFTBOOK_ADMIN_API_KEY not set. Admin APIs are locked in production."
                )

        return warnings


settings = Settings()
