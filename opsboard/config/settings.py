from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, FrozenSet


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for seeding and role administration

    # RBAC
    protected_role_names: str = "CEO,Admin"  # Roles that hold every permission and cannot be edited
    realtime_enabled: bool = True
    realtime_channel: str = "rbac-changes"

    # App
    app_name: str = "opsboard"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_protected_role_names(self) -> FrozenSet[str]:
        return frozenset(n.strip() for n in self.protected_role_names.split(",") if n.strip())

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
