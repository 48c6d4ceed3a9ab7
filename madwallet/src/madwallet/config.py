"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from madcore.constants import DEFAULT_CHAIN_ID, MAX_UTXOS, REQUEST_TIMEOUT
from madcore.errors import ValidationError
from madcore.models import Curve
from madcore.validation import validate_address, validate_curve
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MADWALLET_",
        case_sensitive=False,
        extra="ignore",
    )

    rpc_url: str = "http://127.0.0.1:8884/v1/"
    chain_id: int = DEFAULT_CHAIN_ID
    request_timeout: float = REQUEST_TIMEOUT
    max_utxos: int = Field(default=MAX_UTXOS, ge=1, le=MAX_UTXOS)

    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()


class BuildOptions(BaseModel):
    """Per-transaction options for building and sending."""

    change_address: str | None = None
    change_curve: Curve | None = None
    utxo_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("change_address")
    @classmethod
    def check_change_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return validate_address(value)
        except ValidationError as e:
            raise ValueError(e.message) from e

    @field_validator("change_curve", mode="before")
    @classmethod
    def check_change_curve(cls, value: object) -> Curve | None:
        if value is None:
            return None
        try:
            return validate_curve(value)  # type: ignore[arg-type]
        except ValidationError as e:
            raise ValueError(e.message) from e

    @field_validator("utxo_ids")
    @classmethod
    def check_utxo_ids(cls, value: list[str]) -> list[str]:
        ids = []
        for utxo_id in value:
            utxo_id = utxo_id.lower().removeprefix("0x")
            if len(utxo_id) != 64 or any(c not in "0123456789abcdef" for c in utxo_id):
                raise ValueError(f"Invalid UTXO id: {utxo_id!r}")
            ids.append(utxo_id)
        return ids
