from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "accounts-api"
    environment: str = "local"

    log_level: str = "INFO"
    log_json: bool = True

    mongo_scheme: str = "mongodb+srv"
    mongo_port: int = 27017
    mongo_host: str = "localhost"
    mongo_db: str = "accounts"
    mongo_password: str | None = None
    mongo_params: str | None = None
    mongo_user: str | None = None

    jwt_algorithm: str = "HS256"
    jwt_secret_key: str = "very-secret-key"
    token_expires_days: int = 7
    max_sessions: int = 10

    avatar_max_bytes: int = 1_000_000
    avatar_extensions: tuple[str, ...] = ("jpg", "jpeg", "png")

    model_config = SettingsConfigDict(env_file=(".env",), case_sensitive=True)

    @property
    def mongo_uri(self) -> str:
        auth = ""
        if self.mongo_user and self.mongo_password:
            auth = f"{self.mongo_user}:{self.mongo_password}@"
        # SRV records carry the port themselves
        host = self.mongo_host if self.mongo_scheme == "mongodb+srv" else f"{self.mongo_host}:{self.mongo_port}"
        params = self.mongo_params or "retryWrites=true&w=majority"
        return f"{self.mongo_scheme}://{auth}{host}/{self.mongo_db}?{params}"


settings = Settings()
