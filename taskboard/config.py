from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "data/taskboard.db"
    host: str = "0.0.0.0"
    port: int = 8000
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    jwt_leeway_seconds: int = 30
    bootstrap_admin_uids: str = ""  # comma-separated uids that start out as admin
    store_timeout_seconds: float = 5.0
    default_page_size: int = 50
    max_page_size: int = 200
    rate_limit_read: str = "120/minute"
    rate_limit_write: str = "30/minute"
    rate_limit_claim: str = "60/minute"
    rate_limit_admin: str = "30/minute"

    model_config = {"env_prefix": "TASKBOARD_"}

    @property
    def admin_uids(self) -> set[str]:
        return {uid.strip() for uid in self.bootstrap_admin_uids.split(",") if uid.strip()}


settings = Settings()
