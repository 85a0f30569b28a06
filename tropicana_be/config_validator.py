"""
Configuration validation and startup checks.

This module implements fail-fast validation so that a misconfigured game
server refuses to start instead of running with silently wrong rules
(a negative autospin delay, an unparsable RNG seed, an in-memory rate
limiter in production).
"""

import os
import sys
import warnings
import secrets
from typing import List, Optional

TRUTHY = ('true', '1', 't', 'yes')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid."""
    pass


class ConfigValidator:
    """Validates application configuration and enforces production safety."""

    def __init__(self, is_production: bool = None, environ=None):
        """
        Initialize the configuration validator.

        Args:
            is_production: If None, auto-detect from FLASK_ENV
            environ: Mapping to read from instead of os.environ (used by tests)
        """
        self.environ = os.environ if environ is None else environ
        if is_production is None:
            is_production = self.environ.get('FLASK_ENV', '').lower() == 'production'

        self.is_production = is_production
        self.is_testing = self.environ.get('TESTING', 'False').lower() in TRUTHY
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _get(self, var_name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.environ.get(var_name)
        if value is None or value == '':
            return default
        return value

    def _get_bool(self, var_name: str, default: str = 'False') -> bool:
        return self._get(var_name, default).lower() in TRUTHY

    def validate_secret_key(self) -> str:
        """Validate the Flask secret key."""
        secret_key = self._get('SECRET_KEY')

        if not secret_key:
            if self.is_production:
                raise ConfigValidationError("SECRET_KEY is required in production")
            secret_key = secrets.token_urlsafe(64)
            warnings.warn(
                "SECRET_KEY not set. Generated random key for development. "
                "Set SECRET_KEY environment variable for production!",
                UserWarning
            )
        elif len(secret_key) < 32:
            error_msg = "SECRET_KEY must be at least 32 characters long"
            if self.is_production:
                self.errors.append(f"CRITICAL: {error_msg}")
            else:
                self.warnings.append(f"WARNING: {error_msg}")

        return secret_key

    def validate_rate_limiting_config(self) -> str:
        """Validate rate limiting configuration."""
        rate_limit_uri = self._get('RATELIMIT_STORAGE_URI', 'memory://')

        if rate_limit_uri == 'memory://' and self.is_production:
            self.errors.append(
                "CRITICAL: Rate limiting uses memory:// storage in production. "
                "Set RATELIMIT_STORAGE_URI to a Redis URL (e.g., redis://localhost:6379/0)"
            )

        return rate_limit_uri

    def validate_cors_config(self) -> List[str]:
        """Validate CORS configuration."""
        cors_origins = self._get('CORS_ORIGINS', '')

        if not cors_origins:
            if self.is_production:
                self.warnings.append(
                    "WARNING: CORS_ORIGINS not set in production. "
                    "Cross-origin requests from the presentation client will be rejected."
                )
            return []

        origins = [origin.strip() for origin in cors_origins.split(',') if origin.strip()]

        for origin in origins:
            if origin == '*':
                if self.is_production:
                    self.errors.append("CRITICAL: Wildcard CORS origin (*) not allowed in production")
                else:
                    self.warnings.append("WARNING: Wildcard CORS origin (*) detected")
            elif not origin.startswith(('http://', 'https://')):
                self.errors.append(f"CRITICAL: Invalid CORS origin format: {origin}")

        return origins

    def validate_game_config(self) -> dict:
        """Validate the slot game settings."""
        try:
            delay = float(self._get('AUTOSPIN_DELAY_SECONDS', '1.0'))
        except ValueError:
            raise ConfigValidationError("AUTOSPIN_DELAY_SECONDS must be a number")
        if delay < 0:
            self.errors.append("CRITICAL: AUTOSPIN_DELAY_SECONDS must not be negative")

        try:
            max_count = int(self._get('AUTOSPIN_MAX_COUNT', '100'))
        except ValueError:
            raise ConfigValidationError("AUTOSPIN_MAX_COUNT must be an integer")
        if max_count < 1:
            self.errors.append("CRITICAL: AUTOSPIN_MAX_COUNT must be at least 1")

        seed = self._get('SLOT_RNG_SEED')
        if seed is not None:
            try:
                seed = int(seed)
            except ValueError:
                raise ConfigValidationError("SLOT_RNG_SEED must be an integer")
            if self.is_production:
                self.errors.append("CRITICAL: SLOT_RNG_SEED must not be set in production (outcomes become predictable)")

        return {
            'AUTOSPIN_DELAY_SECONDS': delay,
            'AUTOSPIN_MAX_COUNT': max_count,
            'SLOT_RNG_SEED': seed,
            'SLOT_REBALANCED_WEIGHTS': self._get_bool('SLOT_REBALANCED_WEIGHTS'),
            'SLOT_WILD_SUBSTITUTES': self._get_bool('SLOT_WILD_SUBSTITUTES'),
            'SPIN_RATE_LIMIT': self._get('SPIN_RATE_LIMIT', '120 per minute'),
        }

    def validate_logging_config(self) -> str:
        log_level = self._get('LOG_LEVEL', 'INFO').upper()
        if log_level not in LOG_LEVELS:
            self.errors.append(f"CRITICAL: LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return log_level

    def validate_debug_config(self) -> bool:
        """Validate debug configuration."""
        debug_mode = self._get_bool('FLASK_DEBUG')

        if debug_mode and self.is_production:
            self.errors.append("CRITICAL: Debug mode must be disabled in production (FLASK_DEBUG=False)")

        return debug_mode

    def validate_all(self) -> dict:
        """
        Validate all configuration and return validated config.

        Returns:
            Dictionary of validated configuration values

        Raises:
            ConfigValidationError: If critical validation fails
        """
        config = {
            'SECRET_KEY': self.validate_secret_key(),
            'RATELIMIT_STORAGE_URI': self.validate_rate_limiting_config(),
            'CORS_ORIGINS': self.validate_cors_config(),
            'LOG_LEVEL': self.validate_logging_config(),
            'DEBUG': self.validate_debug_config(),
        }
        config.update(self.validate_game_config())

        if self.errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(self.errors)
            raise ConfigValidationError(error_msg)

        return config

    def print_validation_summary(self):
        env_type = "PRODUCTION" if self.is_production else "DEVELOPMENT"
        print(f"\n=== Configuration Validation Summary ({env_type}) ===")

        if self.errors:
            print(f"\n❌ ERRORS ({len(self.errors)}):")
            for error in self.errors:
                print(f"  {error}")

        if self.warnings:
            print(f"\n⚠️  WARNINGS ({len(self.warnings)}):")
            for warning in self.warnings:
                print(f"  {warning}")

        if not self.errors and not self.warnings:
            print("\n✅ All configuration checks passed!")

        print("=" * 50)


def validate_production_config():
    """
    Validate configuration for production deployment.

    This function should be called during application startup to ensure
    all critical configuration is properly set.

    Returns:
        Dictionary of validated configuration values

    Exits:
        With status code 1 if critical validation fails
    """
    validator = ConfigValidator()

    try:
        config = validator.validate_all()

        if validator.warnings or validator.is_production:
            validator.print_validation_summary()

        return config

    except ConfigValidationError as e:
        validator.print_validation_summary()
        print(f"\n💥 STARTUP FAILED: {e}")
        print("\nFix the configuration errors above before starting the application.")
        sys.exit(1)
