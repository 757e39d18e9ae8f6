from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Campus Catalog"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "campus-catalog"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = 12

    CORS_ORIGINS: str = "http://localhost:5173"

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Courses with only non-active (historical) student references cannot be
    # hard-deleted while this is on.
    HISTORICAL_REFERENCES_BLOCK_DELETE: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
