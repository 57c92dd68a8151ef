from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from typing import Literal, Optional
from pydantic_settings import BaseSettings

# Project root (parent of app/) - used so .env is found regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Explicitly load .env into os.environ so it works in tests and subprocesses
load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    app_name: str = "onsite-relay"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", json_schema_extra={"env": "LOG_LEVEL"})
    port: int = Field(default=8000, json_schema_extra={"env": "PORT"})

    # Intercom (ticketing platform)
    intercom_token: Optional[str] = Field(
        default=None, json_schema_extra={"env": "INTERCOM_TOKEN"}
    )
    intercom_app_id: Optional[str] = Field(
        default=None, json_schema_extra={"env": "INTERCOM_APP_ID"}
    )
    intercom_api_url: str = Field(
        default="https://api.intercom.io",
        json_schema_extra={"env": "INTERCOM_API_URL"},
    )
    intercom_api_version: str = Field(
        default="2.11", json_schema_extra={"env": "INTERCOM_API_VERSION"}
    )
    intercom_timeout_seconds: float = Field(
        default=5.0, gt=0, json_schema_extra={"env": "INTERCOM_TIMEOUT_SECONDS"}
    )

    # Lark (chat platform)
    lark_app_id: Optional[str] = Field(
        default=None, json_schema_extra={"env": "LARK_APP_ID"}
    )
    lark_app_secret: Optional[str] = Field(
        default=None, json_schema_extra={"env": "LARK_APP_SECRET"}
    )
    lark_api_url: str = Field(
        default="https://open.larksuite.com/open-apis",
        json_schema_extra={"env": "LARK_API_URL"},
    )
    lark_send_timeout_seconds: float = Field(
        default=10.0, gt=0, json_schema_extra={"env": "LARK_SEND_TIMEOUT_SECONDS"}
    )
    lark_chat_group_id_myphfe: Optional[str] = Field(
        default=None, json_schema_extra={"env": "LARK_CHAT_GROUP_ID_MYPHFE"}
    )
    lark_chat_group_id_complex_setup: Optional[str] = Field(
        default=None, json_schema_extra={"env": "LARK_CHAT_GROUP_ID_COMPLEX_SETUP"}
    )
    lark_chat_group_id: Optional[str] = Field(
        default=None, json_schema_extra={"env": "LARK_CHAT_GROUP_ID"}
    )
    # Comma-separated chat ids treated as "not configured" on top of the built-ins
    lark_placeholder_chat_ids: str = Field(
        default="", json_schema_extra={"env": "LARK_PLACEHOLDER_CHAT_IDS"}
    )

    # Monitored program
    monitored_team_id: str = Field(
        default="5372074", json_schema_extra={"env": "MONITORED_TEAM_ID"}
    )
    require_site_inspection: bool = Field(
        default=False, json_schema_extra={"env": "REQUIRE_SITE_INSPECTION"}
    )
    notification_format: Literal["card", "text"] = Field(
        default="card", json_schema_extra={"env": "NOTIFICATION_FORMAT"}
    )

    @property
    def is_production(self) -> bool:
        """Check if the current environment is production."""
        return self.environment.lower() == "production"

    @property
    def is_test(self) -> bool:
        """Check if the current environment is test."""
        return self.environment.lower() == "test"

    @property
    def extra_placeholder_chat_ids(self) -> set[str]:
        return {
            chat_id.strip()
            for chat_id in self.lark_placeholder_chat_ids.split(",")
            if chat_id.strip()
        }

    class ConfigDict:
        env_file = str(_PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "allow"  # Allow extra environment variables


def get_settings() -> Settings:
    """Get application settings with required environment variables."""
    return Settings()
