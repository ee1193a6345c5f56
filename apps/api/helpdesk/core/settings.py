from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # DB bootstrap (dev only)
    AUTO_DB_BOOTSTRAP: bool = False

    # Bootstrap admin account, seeded only when AUTO_DB_BOOTSTRAP is on
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "admin1234!@"
    ADMIN_DISPLAY_NAME: str = "Administrator"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
