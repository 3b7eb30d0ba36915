from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "tratativas"
    db_username: str = "tratativas"
    db_password: str = "secret"

    doppio_api_url: str = "https://api.doppio.sh"
    doppio_template_id_folha1: str = ""
    doppio_api_key_folha1: str = ""
    doppio_template_id_folha2: str = ""
    doppio_api_key_folha2: str = ""
    render_timeout_seconds: int = 30

    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "tratativas"
    storage_timeout_seconds: int = 30
    signed_url_expires_seconds: int = 31536000

    temp_dir: str = "temp"
    remote_temp_prefix: str = "temp"
    cleanup_interval_seconds: int = 21600
    cleanup_min_age_seconds: int = 3600

    record_update_attempts: int = 3

    api_host: str = "0.0.0.0"
    api_port: int = 3000
    cors_origins: list[str] = ["*"]
