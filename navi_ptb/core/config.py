# /navi_ptb/core/config.py
# Process-wide protocol configuration. Loaded once, frozen, and passed
# explicitly into the resolver and builders.
import json
from pathlib import Path
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from navi_ptb.core.errors import ConfigurationError

CLOCK_ID = "0x6"


class Settings(BaseSettings):
    # Lending protocol
    PROTOCOL_PACKAGE: str | None = None
    STORAGE_ID: str | None = None
    PRICE_ORACLE_ID: str | None = None
    INCENTIVE_ID: str | None = None
    INCENTIVE_V2_ID: str | None = None
    UI_GETTER_PACKAGE: str | None = None
    FLASHLOAN_CONFIG_ID: str | None = None

    # Liquid staking (vSUI)
    VSUI_PACKAGE: str | None = None
    VSUI_POOL_ID: str | None = None
    VSUI_METADATA_ID: str | None = None
    VSUI_WRAPPER_ID: str | None = None

    # Static tables; the funds-pool registry falls back to the built-in one
    POOLS_FILE: str | None = None
    FUNDS_POOLS_FILE: str | None = None

    # External services
    ROUTER_BASE_URL: str = "https://open-aggregator-api.naviprotocol.io/find_routes"
    SENTRY_DSN: str | None = None

    # Operational Settings
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


class PoolConfig(BaseModel):
    """Static descriptor of one lending pool."""

    model_config = ConfigDict(frozen=True)

    asset_id: int = Field(ge=0, le=255)
    pool_id: str
    type: str


class FundsPoolInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    coin_type: str
    oracle_id: int


class FundsPoolRegistry(BaseModel):
    """Versioned funds-pool -> reward coin type table, keyed by hex pool id (no 0x)."""

    model_config = ConfigDict(frozen=True)

    version: int = 1
    pools: Dict[str, FundsPoolInfo] = Field(default_factory=dict)

    @field_validator("pools", mode="before")
    @classmethod
    def _normalize_keys(cls, pools):
        return {cls.normalize_id(k): v for k, v in pools.items()}

    @staticmethod
    def normalize_id(pool_id: str) -> str:
        pool_id = pool_id.strip().lower()
        return pool_id[2:] if pool_id.startswith("0x") else pool_id

    def get(self, pool_id: str) -> FundsPoolInfo | None:
        return self.pools.get(self.normalize_id(pool_id))


DEFAULT_FUNDS_POOLS = FundsPoolRegistry(
    version=1,
    pools={
        "f975bc2d4cca10e3ace8887e20afd77b46c383b4465eac694c4688344955dea4": FundsPoolInfo(
            coin_type="0x2::sui::SUI", oracle_id=0
        ),
        "e2b5ada45273676e0da8ae10f8fe079a7cec3d0f59187d3d20b1549c275b07ea": FundsPoolInfo(
            coin_type="0x549e8b69270defbfafd4f94e17ec44cdbdd99820b33bda2278dea3b9a32d3f55::cert::CERT",
            oracle_id=5,
        ),
        "a20e18085ce04be8aa722fbe85423f1ad6b1ae3b1be81ffac00a30f1d6d6ab51": FundsPoolInfo(
            coin_type="0xbde4ba4c2e274a60ce15c1cfff9e5c42e41654ac8b6d906a57efa4bd3c29f47d::hasui::HASUI",
            oracle_id=6,
        ),
        "9dae0cf104a193217904f88a48ce2cf0221e8cd9073878edd05101d6b771fa09": FundsPoolInfo(
            coin_type="0xa99b8952d4f7d947ea77fe0ecdcc9e5fc0bcab2841d6e2a5aa00c3044e5544b5::navx::NAVX",
            oracle_id=7,
        ),
    },
)


class FlashloanConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str


class VSuiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    package: str
    pool: str
    metadata: str
    wrapper: str
    coin_type: str = "0x549e8b69270defbfafd4f94e17ec44cdbdd99820b33bda2278dea3b9a32d3f55::cert::CERT"


class ProtocolConfig(BaseModel):
    """
    Resolved, read-only configuration. Safe to share between concurrent readers.
    """

    model_config = ConfigDict(frozen=True)

    protocol_package: str
    storage_id: str
    price_oracle_id: str
    incentive_id: str
    incentive_v2_id: str
    ui_getter_package: str | None = None
    clock_id: str = CLOCK_ID
    flashloan: FlashloanConfig | None = None
    vsui: VSuiConfig | None = None
    pools: Dict[str, PoolConfig] = Field(default_factory=dict)
    funds_pools: FundsPoolRegistry = DEFAULT_FUNDS_POOLS


def _read_json(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}", details={"error": str(e)}) from e


def load_config(settings: "Settings | None" = None) -> ProtocolConfig:
    """
    Builds the frozen ProtocolConfig from settings.

    Raises ConfigurationError when a required global is missing or a table
    file cannot be parsed. There is no retry: a broken config is fatal.
    """
    # Late import: the validator logs, and the logger reads settings
    from navi_ptb.core.config_validator import validate

    if settings is None:
        settings = get_settings()
    validate(settings)

    pools: Dict[str, PoolConfig] = {}
    funds_pools = DEFAULT_FUNDS_POOLS
    try:
        if settings.POOLS_FILE:
            raw = _read_json(settings.POOLS_FILE)
            pools = {symbol: PoolConfig(**entry) for symbol, entry in raw.items()}
        if settings.FUNDS_POOLS_FILE:
            funds_pools = FundsPoolRegistry(**_read_json(settings.FUNDS_POOLS_FILE))

        flashloan = FlashloanConfig(id=settings.FLASHLOAN_CONFIG_ID) if settings.FLASHLOAN_CONFIG_ID else None
        vsui = None
        if settings.VSUI_PACKAGE:
            vsui = VSuiConfig(
                package=settings.VSUI_PACKAGE,
                pool=settings.VSUI_POOL_ID,
                metadata=settings.VSUI_METADATA_ID,
                wrapper=settings.VSUI_WRAPPER_ID,
            )

        return ProtocolConfig(
            protocol_package=settings.PROTOCOL_PACKAGE,
            storage_id=settings.STORAGE_ID,
            price_oracle_id=settings.PRICE_ORACLE_ID,
            incentive_id=settings.INCENTIVE_ID,
            incentive_v2_id=settings.INCENTIVE_V2_ID,
            ui_getter_package=settings.UI_GETTER_PACKAGE,
            flashloan=flashloan,
            vsui=vsui,
            pools=pools,
            funds_pools=funds_pools,
        )
    except ValidationError as e:
        raise ConfigurationError("Protocol configuration is invalid", details={"error": str(e)}) from e


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except ValidationError as e:
            raise ConfigurationError("FAILED_TO_LOAD_SETTINGS", details={"error": str(e)}) from e
    return _settings
