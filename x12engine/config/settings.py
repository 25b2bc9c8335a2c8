"""Engine configuration loaded from the environment."""
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings

from x12engine.utils.logger import get_logger

logger = get_logger(__name__)


class X12Settings(BaseSettings):
    """Runtime settings for parsing and generation."""

    # Inputs above this size are rejected before delimiter extraction
    max_input_length: int = Field(10 * 1024 * 1024, alias="X12_MAX_INPUT_LENGTH")
    supported_versions: List[str] = Field(["004010", "005010"], alias="X12_SUPPORTED_VERSIONS")

    # Write-path defaults
    default_version: str = Field("005010", alias="X12_DEFAULT_VERSION")
    default_usage_indicator: str = Field("T", alias="X12_DEFAULT_USAGE_INDICATOR")
    default_id_qualifier: str = Field("ZZ", alias="X12_DEFAULT_ID_QUALIFIER")
    element_separator: str = Field("*", alias="X12_ELEMENT_SEPARATOR")
    subelement_separator: str = Field(":", alias="X12_SUBELEMENT_SEPARATOR")
    repetition_separator: str = Field("^", alias="X12_REPETITION_SEPARATOR")
    segment_terminator: str = Field("~", alias="X12_SEGMENT_TERMINATOR")
    gs_version_codes: Dict[str, str] = Field(
        {"004010": "004010", "005010": "005010"},
        alias="X12_GS_VERSION_CODES",
    )

    log_level: str = Field("INFO", alias="X12_LOG_LEVEL")
    log_format: str = Field("json", alias="X12_LOG_FORMAT")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        populate_by_name = True  # Allow both field name and alias


settings = X12Settings()


def get_settings() -> X12Settings:
    """Return the process-wide settings instance."""
    return settings
