"""
Configuration module with fail-fast validation.

All configuration values are validated once at import time.
Production environments must provide SECRET_KEY and a shared rate limit store.
"""
from .config_validator import validate_production_config


class Config:
    """Game server configuration with fail-fast validation."""

    # Validate configuration and get checked values
    _validated_config = validate_production_config()

    SECRET_KEY = _validated_config['SECRET_KEY']

    # Flask Debug Mode - Validated
    DEBUG = _validated_config['DEBUG']
    LOG_LEVEL = _validated_config['LOG_LEVEL']

    # CORS Configuration
    CORS_ORIGINS_LIST = _validated_config['CORS_ORIGINS']

    # Rate Limiter
    RATELIMIT_STORAGE_URI = _validated_config['RATELIMIT_STORAGE_URI']
    SPIN_RATE_LIMIT = _validated_config['SPIN_RATE_LIMIT']

    # Autospin
    AUTOSPIN_DELAY_SECONDS = _validated_config['AUTOSPIN_DELAY_SECONDS']
    AUTOSPIN_MAX_COUNT = _validated_config['AUTOSPIN_MAX_COUNT']

    # Reel behaviour
    SLOT_RNG_SEED = _validated_config['SLOT_RNG_SEED']
    SLOT_REBALANCED_WEIGHTS = _validated_config['SLOT_REBALANCED_WEIGHTS']
    SLOT_WILD_SUBSTITUTES = _validated_config['SLOT_WILD_SUBSTITUTES']


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key-not-for-production-use-0000'
    # Disable rate limiting for tests
    RATELIMIT_ENABLED = False
    RATELIMIT_DEFAULT_LIMITS_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    # No pause between autospins, and reproducible reels
    AUTOSPIN_DELAY_SECONDS = 0
    AUTOSPIN_MAX_COUNT = 100
    SLOT_RNG_SEED = 1234
    SLOT_REBALANCED_WEIGHTS = False
    SLOT_WILD_SUBSTITUTES = False
