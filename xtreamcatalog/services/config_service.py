"""Configuration service — turns opaque client tokens into AddonConfig.

Accepted token forms:

* ``enc:<base64url>``: AES-256-GCM (nonce | ciphertext | tag), key derived
  from the server's ``CONFIG_SECRET``.
* ``<base64url>`` of a JSON object.
* URL-encoded JSON object.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
import os
from typing import Optional
from urllib.parse import unquote

from Crypto.Cipher import AES
from pydantic import ValidationError

from xtreamcatalog.errors import ConfigError
from xtreamcatalog.models.config import AddonConfig, Settings
from xtreamcatalog.services.xtream_service import require_credentials

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc:"
_NONCE_SIZE = 12
_TAG_SIZE = 16


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


class ConfigService:
    """Decodes client configuration tokens and issues encrypted ones."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def _key(self) -> bytes:
        if not self.settings.config_secret:
            raise ConfigError("Encryption not enabled on server (CONFIG_SECRET missing)")
        return hashlib.sha256(self.settings.config_secret.encode("utf-8")).digest()

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.settings.config_secret)

    def encrypt(self, payload: dict) -> str:
        """Issue an ``enc:`` token for a configuration payload."""
        nonce = os.urandom(_NONCE_SIZE)
        cipher = AES.new(self._key(), AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(json.dumps(payload).encode("utf-8"))
        return ENCRYPTED_PREFIX + _b64encode(nonce + ciphertext + tag)

    def _decrypt(self, token: str) -> str:
        try:
            blob = _b64decode(token[len(ENCRYPTED_PREFIX):])
        except (binascii.Error, ValueError, UnicodeEncodeError) as e:
            raise ConfigError(f"Malformed encrypted token: {e}") from e
        if len(blob) <= _NONCE_SIZE + _TAG_SIZE:
            raise ConfigError("Encrypted token too short")
        nonce, ciphertext, tag = blob[:_NONCE_SIZE], blob[_NONCE_SIZE:-_TAG_SIZE], blob[-_TAG_SIZE:]
        cipher = AES.new(self._key(), AES.MODE_GCM, nonce=nonce)
        try:
            return cipher.decrypt_and_verify(ciphertext, tag).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise ConfigError("Encrypted token failed verification") from e

    # ------------------------------------------------------------------
    # Token parsing
    # ------------------------------------------------------------------

    def _decode_payload(self, token: str) -> dict:
        if token.startswith(ENCRYPTED_PREFIX):
            text: Optional[str] = self._decrypt(token)
        else:
            text = None
            try:
                decoded = _b64decode(token).decode("utf-8")
                if decoded.lstrip().startswith("{"):
                    text = decoded
            except (binascii.Error, ValueError, UnicodeError):
                pass
            if text is None:
                text = unquote(token)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid configuration token: {e}") from e
        if not isinstance(payload, dict):
            raise ConfigError("Configuration token must decode to an object")
        return payload

    def resolve(self, token: str) -> AddonConfig:
        """Token -> validated AddonConfig; raises ``ConfigError``."""
        if not token or len(token) < 4:
            raise ConfigError("Missing configuration token")
        payload = self._decode_payload(token)
        try:
            config = AddonConfig.model_validate(payload)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e.error_count()} error(s)") from e
        require_credentials(config)
        logger.debug(f"Resolved config for {config.base_url} ({config.xtream_username})")
        return config

    def encode(self, payload: dict) -> str:
        """Plain (unencrypted) token for a payload."""
        return _b64encode(json.dumps(payload).encode("utf-8"))

    def get_cache_ttl(self, config: Optional[AddonConfig] = None) -> int:
        if config is not None and config.cache_ttl:
            return int(config.cache_ttl)
        return self.settings.cache_ttl
