from typing import Literal

from pydantic import BaseModel, Field, SecretStr

from mailing_list.domain.subscriber import SubscriberEmail


class ApplicationSettings(BaseModel):
    host: str
    port: int
    base_url: str  # Public URL used in confirmation links


class DatabaseSettings(BaseModel):
    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = SecretStr("")
    database_name: str = "newsletter"
    require_ssl: bool = False
    url: SecretStr | None = None  # Full SQLAlchemy URL; overrides the parts above
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    acquire_timeout_seconds: float = Field(default=2.0, gt=0)


class EmailClientSettings(BaseModel):
    backend: Literal["postmark", "dev"] = "postmark"
    base_url: str
    sender_email: str
    authorization_token: SecretStr
    timeout_milliseconds: int = Field(gt=0)

    def sender(self) -> SubscriberEmail:
        """Parse the sender address; raises SubscriberValidationError."""
        return SubscriberEmail.parse(self.sender_email)

    def timeout_seconds(self) -> float:
        return self.timeout_milliseconds / 1000


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseModel):
    application: ApplicationSettings
    database: DatabaseSettings
    email_client: EmailClientSettings
    logging: LoggingSettings = LoggingSettings()
