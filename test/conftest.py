# /test/conftest.py
# Shared fixtures: an injected fake protocol configuration, so no test needs
# environment variables or network access.
import pytest

from navi_ptb.core.config import FlashloanConfig, PoolConfig, ProtocolConfig, VSuiConfig
from navi_ptb.ptb.builders import LendingBuilder
from navi_ptb.ptb.resolver import ReferenceResolver
from navi_ptb.ptb.unit import TransactionUnit

PACKAGE = "0xprotocol"
SUI_TYPE = "0x2::sui::SUI"
USDC_TYPE = "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN"
SENDER = "0x447077b26d5fe138894772fea15a22e5bec45d019579d09e2a41cf05012252c7"

SUI_POOL = PoolConfig(asset_id=0, pool_id="0xpool_sui", type=SUI_TYPE)
USDC_POOL = PoolConfig(asset_id=1, pool_id="0xpool_usdc", type=USDC_TYPE)


@pytest.fixture
def config():
    return ProtocolConfig(
        protocol_package=PACKAGE,
        storage_id="0xstorage",
        price_oracle_id="0xoracle",
        incentive_id="0xincentive",
        incentive_v2_id="0xincentive_v2",
        ui_getter_package="0xui_getter",
        flashloan=FlashloanConfig(id="0xflashloan_config"),
        vsui=VSuiConfig(package="0xvsui", pool="0xvsui_pool", metadata="0xvsui_metadata", wrapper="0xvsui_wrapper"),
        pools={"SUI": SUI_POOL, "USDC": USDC_POOL},
    )


@pytest.fixture
def resolver(config):
    return ReferenceResolver(config)


@pytest.fixture
def unit():
    return TransactionUnit(sender=SENDER)


@pytest.fixture
def builder(unit, resolver):
    return LendingBuilder(unit, resolver)
