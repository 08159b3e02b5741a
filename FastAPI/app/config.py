from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Required from environment (.env / deployment secrets)
    database_url: str
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    app_env: str = "development"  # development, staging, production

    # CORS origins as comma-separated values
    # Example: "https://app.example.com,https://admin.example.com"
    cors_allow_origins: str = "http://localhost:3000"

    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # Messaging limits
    connection_message_max_length: int = 300
    chat_message_max_length: int = 5000

    # Bounded retries for find-or-create under unique-key races
    find_or_create_max_retries: int = 3

    notifications_page_size: int = 50

    # Request guards
    rate_limit_auth_per_min: int = 20
    rate_limit_message_per_min: int = 60
    rate_limit_connection_per_min: int = 20

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
