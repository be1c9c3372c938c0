from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _get_fernet(config: PipelineConfig) -> Fernet:
    if not config.token_encryption_key:
        raise ConfigurationError("TOKEN_ENCRYPTION_KEY is not configured.")
    try:
        return Fernet(config.token_encryption_key.encode("utf-8"))
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("TOKEN_ENCRYPTION_KEY is invalid.") from exc


def encrypt_secret(value: str, config: PipelineConfig | None = None) -> str:
    if not value:
        raise ValueError("Secret must be a non-empty string")
    fernet = _get_fernet(config or get_pipeline_config())
    return fernet.encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(token: str, config: PipelineConfig | None = None) -> str:
    if not token:
        raise ConfigurationError("No stored access token.")
    fernet = _get_fernet(config or get_pipeline_config())
    try:
        return fernet.decrypt(token.encode("ascii")).decode("utf-8")
    except InvalidToken as exc:
        logger.warning("crypto.decrypt_failed reason=invalid_token")
        raise ConfigurationError("Stored access token cannot be decrypted.") from exc
