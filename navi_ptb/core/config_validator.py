# /navi_ptb/core/config_validator.py
# Validates that every global reference a builder may need is configured.
from navi_ptb.core.config import Settings
from navi_ptb.core.errors import ConfigurationError
from navi_ptb.core.logger import get_logger

log = get_logger(__name__)

REQUIRED_VARS = ['PROTOCOL_PACKAGE', 'STORAGE_ID', 'PRICE_ORACLE_ID', 'INCENTIVE_ID', 'INCENTIVE_V2_ID']
VSUI_VARS = ['VSUI_POOL_ID', 'VSUI_METADATA_ID', 'VSUI_WRAPPER_ID']


def validate(settings: Settings):
    log.debug("CONFIG_VALIDATION_START")
    errors = []

    for var in REQUIRED_VARS:
        if not getattr(settings, var, None):
            errors.append(f"Missing required configuration: {var}")

    # vSUI is optional, but all-or-nothing
    if settings.VSUI_PACKAGE:
        for var in VSUI_VARS:
            if not getattr(settings, var, None):
                errors.append(f"Missing required configuration: {var}")

    if errors:
        for error in errors:
            log.critical("CONFIG_VALIDATION_FAILED", error=error)
        raise ConfigurationError("Protocol configuration is incomplete.", details={"errors": errors})

    log.debug("CONFIG_VALIDATION_PASSED")
