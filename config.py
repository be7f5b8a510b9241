"""
Configuration loading and validation.

Settings are read once from the environment (optionally populated from a
``.env`` file by ``main.py``) and then passed explicitly to the components
that need them, so nothing below the HTTP layer touches ``os.environ``.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

API_KEY_ENV_VAR = "AI_GATEWAY_API_KEY"

# Needed for /health-analysis; its absence fails each request, not startup
REQUIRED_ENV_VARS = [
    API_KEY_ENV_VAR,
]

OPTIONAL_ENV_VARS = [
    "AI_GATEWAY_URL",
    "AI_GATEWAY_MODEL",
    "AI_GATEWAY_TEMPERATURE",
    "AI_GATEWAY_MAX_TOKENS",
    "AWS_REGION",
    "SEARCHES_TABLE_NAME",
    "PROFILES_TABLE_NAME",
    "ALLOWED_ORIGINS",
    "ENVIRONMENT",
    "LOG_LEVEL",
    "API_HOST",
    "API_PORT",
]


@dataclass
class ValidationResult:
    """Result of a validation check"""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the analysis service and its stores."""
    gateway_api_key: Optional[str] = None
    gateway_url: str = DEFAULT_GATEWAY_URL
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    aws_region: str = "us-east-1"
    searches_table_name: str = "health_searches"
    profiles_table_name: str = "profiles"
    environment: str = "development"


def _get(env_vars: Dict[str, str], name: str, default: str) -> str:
    value = env_vars.get(name)
    return value if value else default


def load_settings(env_vars: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build ``Settings`` from environment variables.

    Args:
        env_vars: Mapping to read from. If None, uses os.environ

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    if env_vars is None:
        env_vars = dict(os.environ)

    return Settings(
        gateway_api_key=env_vars.get(API_KEY_ENV_VAR) or None,
        gateway_url=_get(env_vars, "AI_GATEWAY_URL", DEFAULT_GATEWAY_URL),
        model=_get(env_vars, "AI_GATEWAY_MODEL", DEFAULT_MODEL),
        temperature=float(_get(env_vars, "AI_GATEWAY_TEMPERATURE", str(DEFAULT_TEMPERATURE))),
        max_tokens=int(_get(env_vars, "AI_GATEWAY_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
        aws_region=_get(env_vars, "AWS_REGION", "us-east-1"),
        searches_table_name=_get(env_vars, "SEARCHES_TABLE_NAME", "health_searches"),
        profiles_table_name=_get(env_vars, "PROFILES_TABLE_NAME", "profiles"),
        environment=_get(env_vars, "ENVIRONMENT", "development").lower(),
    )


def validate_environment_variables(env_vars: Optional[Dict[str, str]] = None) -> ValidationResult:
    """
    Check the environment for missing or malformed configuration.

    Args:
        env_vars: Dictionary of environment variables. If None, uses os.environ

    Returns:
        ValidationResult with validation status, errors and warnings
    """
    if env_vars is None:
        env_vars = dict(os.environ)

    errors = []
    warnings = []

    for var in REQUIRED_ENV_VARS:
        if not env_vars.get(var):
            errors.append(f"Required environment variable '{var}' is missing or empty")

    temperature = env_vars.get("AI_GATEWAY_TEMPERATURE")
    if temperature:
        try:
            value = float(temperature)
            if not 0.0 <= value <= 2.0:
                errors.append(f"AI_GATEWAY_TEMPERATURE must be between 0 and 2, got {value}")
        except ValueError:
            errors.append(f"AI_GATEWAY_TEMPERATURE must be a number, got '{temperature}'")

    max_tokens = env_vars.get("AI_GATEWAY_MAX_TOKENS")
    if max_tokens:
        try:
            if int(max_tokens) <= 0:
                errors.append(f"AI_GATEWAY_MAX_TOKENS must be positive, got {max_tokens}")
        except ValueError:
            errors.append(f"AI_GATEWAY_MAX_TOKENS must be an integer, got '{max_tokens}'")

    gateway_url = env_vars.get("AI_GATEWAY_URL")
    if gateway_url and not gateway_url.startswith(("http://", "https://")):
        errors.append(f"AI_GATEWAY_URL must be an http(s) URL, got '{gateway_url}'")

    environment = env_vars.get("ENVIRONMENT")
    if not environment:
        warnings.append("ENVIRONMENT not set, will default to 'development'")
    elif environment.lower() == "production" and not env_vars.get("ALLOWED_ORIGINS"):
        errors.append("ALLOWED_ORIGINS must be set in production")

    if "AWS_REGION" not in env_vars:
        warnings.append("AWS_REGION not set, will default to 'us-east-1'")

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def log_validation_result(result: ValidationResult, logger: logging.Logger) -> None:
    """
    Report a validation result through ``logger``.

    Errors are logged at ERROR and warnings at WARNING; nothing is raised so
    the service can still start without a gateway key.
    """
    if result.is_valid:
        logger.info("Configuration validated")

    for error in result.errors:
        logger.error(f"Configuration error: {error}")

    for warning in result.warnings:
        logger.warning(f"Configuration warning: {warning}")
