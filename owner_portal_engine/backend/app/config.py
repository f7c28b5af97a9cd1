from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./owner_portal.db"

    # ---- Upstream providers ----
    # Primary: channel manager (reservations, calendar, pricing)
    primary_base_url: str = "https://api.hostaway.com/v1"
    primary_token: str | None = None

    # Secondary: property back-office (reservations, compliance submissions, tourist tax)
    secondary_base_url: str = "https://app.hostkit.pt/api"
    secondary_api_key: str | None = None
    secondary_account_id: str | None = None

    upstream_timeout_seconds: float = 20.0

    # ---- Compliance (guest registration submissions) ----
    compliance_grace_days: int = 7
    compliance_due_soon_days: int = 7
    compliance_lookback_days: int = 90
    compliance_metrics_window_days: int = 30
    low_compliance_threshold: int = 80

    # ---- Owner statements ----
    cleaning_fee_vat_rate: float = 0.23
    default_commission_rate: float = 0.25

    # ---- Reservations ----
    full_range_start: str = "2020-01-01"
    full_range_end: str = "2030-12-31"
    email_not_provided: str = "Not provided by platform (privacy policy)"
    default_currency: str = "EUR"

    def model_post_init(self, __context) -> None:
        for name in ("cleaning_fee_vat_rate", "default_commission_rate"):
            v = float(getattr(self, name))
            if not 0.0 <= v <= 1.0:
                raise ValueError(f"{name} must be a ratio in [0, 1], got {v}")

        for name in (
            "compliance_grace_days",
            "compliance_due_soon_days",
            "compliance_lookback_days",
            "compliance_metrics_window_days",
        ):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must be >= 0")

        env = (self.app_env or "local").strip().lower()
        if env in ("prod", "production"):
            # Hard fail: prod without upstream credentials would silently serve empty dashboards
            if not self.primary_token:
                raise ValueError("CONFIG: primary_token is required in prod")
            if not self.secondary_api_key:
                raise ValueError("CONFIG: secondary_api_key is required in prod")


settings = Settings()
