from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "CMS Subsites"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./subsites.db"

    # Security settings
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Multi-tenancy
    enable_multitenancy: bool = True
    # When True, "www.example.com" and "example.com" are different hosts.
    # Never changes how wildcards expand.
    strict_subdomain_matching: bool = False
    write_hostmap: bool = True
    hostmap_path: str = "host-map.json"
    default_host: str = "localhost"
    tenant_session_key: str = "SubsiteID"
    tenant_override_param: str = "SubsiteID"
    main_site_title: str = "Main site"

    # Localisation
    default_locale: str = "en_US"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
