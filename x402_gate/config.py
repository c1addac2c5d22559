"""Startup configuration read from the environment and ``.env``."""

from __future__ import annotations

from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .mechanisms.evm.utils import is_valid_address

# Load .env file if it exists
load_dotenv()


class GatewaySettings(BaseSettings):
    """Environment-driven settings for the demo gateway.

    ``FACILITATOR_URL`` and ``EVM_ADDRESS`` have no defaults; the process
    must not start without them.
    """

    FACILITATOR_URL: str
    EVM_ADDRESS: str
    APP_NAME: str = "Next x402 Demo"
    APP_LOGO: str = "/x402-icon-blue.png"
    TESTNET: bool = True
    FACILITATOR_TIMEOUT: float = 30.0
    LOG_LEVEL: str = "INFO"
    FAUCET_URL: str = "http://localhost:3001"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("FACILITATOR_URL")
    def validate_facilitator_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("EVM_ADDRESS")
    def validate_evm_address(cls, v: str) -> str:
        if not is_valid_address(v):
            raise ValueError("must be a 0x-prefixed 20-byte address")
        return v

    @field_validator("FACILITATOR_TIMEOUT")
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v


def load_settings(**overrides) -> GatewaySettings:
    """Build settings, turning validation problems into ConfigurationError.

    Raises:
        ConfigurationError: Naming every missing or invalid variable.
    """
    try:
        return GatewaySettings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            name = ".".join(str(loc) for loc in error["loc"])
            if error["type"] == "missing":
                problems.append(f"{name} is required")
            else:
                problems.append(f"{name}: {error['msg']}")
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems)) from e

