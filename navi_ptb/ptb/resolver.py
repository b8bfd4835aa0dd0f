# /navi_ptb/ptb/resolver.py
# Maps symbolic identifiers to concrete references. No side effects.
from navi_ptb.core.config import FundsPoolInfo, PoolConfig, ProtocolConfig, VSuiConfig
from navi_ptb.core.errors import ConfigurationError, UnresolvedReference
from navi_ptb.ptb.types import SharedRef


class ReferenceResolver:
    def __init__(self, config: ProtocolConfig | None):
        if config is None:
            raise ConfigurationError("Protocol configuration was not loaded")
        self.config = config

    # --- targets ---

    def target(self, module: str, function: str) -> str:
        return f"{self.config.protocol_package}::{module}::{function}"

    def ui_getter_target(self, module: str, function: str) -> str:
        if not self.config.ui_getter_package:
            raise ConfigurationError("UI getter package is not configured")
        return f"{self.config.ui_getter_package}::{module}::{function}"

    # --- global singletons ---

    def clock(self, mutable: bool = True) -> SharedRef:
        if mutable:
            return SharedRef(object_id=self.config.clock_id)
        # The system clock is created at genesis
        return SharedRef(object_id=self.config.clock_id, mutable=False, initial_shared_version=1)

    def storage(self) -> SharedRef:
        return SharedRef(object_id=self.config.storage_id)

    def oracle(self) -> SharedRef:
        return SharedRef(object_id=self.config.price_oracle_id)

    def incentive(self) -> SharedRef:
        return SharedRef(object_id=self.config.incentive_id)

    def incentive_v2(self) -> SharedRef:
        return SharedRef(object_id=self.config.incentive_v2_id)

    def flashloan_config(self) -> SharedRef:
        if self.config.flashloan is None:
            raise ConfigurationError("Flash loan config object is not configured")
        return SharedRef(object_id=self.config.flashloan.id)

    def vsui(self) -> VSuiConfig:
        if self.config.vsui is None:
            raise ConfigurationError("vSUI liquid staking is not configured")
        return self.config.vsui

    def shared(self, object_id: str, mutable: bool = True) -> SharedRef:
        return SharedRef(object_id=object_id, mutable=mutable)

    # --- pool-specific ---

    def pool(self, pool: PoolConfig) -> SharedRef:
        return SharedRef(object_id=pool.pool_id)

    def pool_by_symbol(self, symbol: str) -> PoolConfig:
        try:
            return self.config.pools[symbol]
        except KeyError:
            raise UnresolvedReference(f"Unknown pool symbol: {symbol}", identifier=symbol) from None

    def funds_pool(self, pool_id: str) -> FundsPoolInfo:
        info = self.config.funds_pools.get(pool_id)
        if info is None:
            raise UnresolvedReference(
                f"Unknown incentive funds pool: {pool_id}",
                identifier=pool_id,
                details={"registry_version": self.config.funds_pools.version},
            )
        return info

    def funds_pool_ref(self, pool_id: str) -> SharedRef:
        return SharedRef(object_id=f"0x{self.config.funds_pools.normalize_id(pool_id)}")
