from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from urllib.parse import quote_plus
from typing import Optional

class Settings(BaseSettings):
    env: str = "local"

    database_url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    postgres_user: Optional[str] = None
    postgres_password: Optional[str] = None
    postgres_db: str = "grocerycart"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Checkout
    tax_rate: float = 0.02
    currency: str = "inr"
    client_url: str = "http://localhost:5173"
    allow_guest_online_payment: bool = True
    pending_payment_expiry_hours: int = 24

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    # Brevo email
    brevo_api_key: str = ""
    mail_from: str = "orders@grocerycart.local"
    store_name: str = "Grocerycart"
    seller_email: str = "seller@grocerycart.local"

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        if not self.postgres_user:
            return "sqlite:///./grocerycart.db"
        encoded_password = quote_plus(self.postgres_password or "")
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

settings = Settings()


def get_settings() -> Settings:
    return settings
