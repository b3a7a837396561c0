from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Public key-provisioning API
    public_api_enabled: bool = False
    public_api_allowed_ips: str = ""
    public_api_secret: str = ""
    public_api_prefix: str = ""
    trust_proxy: bool = False

    # Feishu notifications
    feishu_webhook_url: str = ""
    feishu_webhook_secret: str = ""
    notification_timeout_seconds: float = 10.0
    timezone_offset_hours: int = 8

    # Key store
    api_key_prefix: str = "cr_"
    database_path: str = "./data/keygate.db"

    # Logging
    log_level: str = "info"

    # Rate limiting
    rate_limit_per_minute: int = 30

    # CORS
    cors_origins: str = ""

    # Deployment mode: "container" (default) or "lambda"
    deployment_mode: str = "container"

    @property
    def allowed_ip_list(self) -> list[str]:
        return [ip.strip() for ip in self.public_api_allowed_ips.split(",") if ip.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
