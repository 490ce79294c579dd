"""Encryption service for stored secrets.

Secrets are encrypted with Fernet (AES-128-CBC + HMAC-SHA256). The stored
form is ``"<key_id>:<fernet token>"`` so that rows written under a retired key
can still be read after the active key changes.
"""
import base64
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 32
KEY_ID_SEPARATOR = ':'
DEFAULT_KEY_ID = 'k1'


class SecretCodecError(Exception):
    """Base class for codec failures."""


class ConfigurationError(SecretCodecError):
    """Encryption key is missing or malformed."""


class DecryptionError(SecretCodecError):
    """Ciphertext could not be decrypted with the configured keys."""


class SerializationError(SecretCodecError):
    """Value could not be converted to UTF-8 bytes or to or from JSON."""


class PayloadDecodeError(DecryptionError, SerializationError):
    """Decrypted payload is not valid JSON."""


def _utf8(text: str) -> bytes:
    try:
        return text.encode('utf-8')
    except UnicodeEncodeError as e:
        raise SerializationError(f"Input is not valid UTF-8 text: {e.reason}") from e


def hash_data(data: str) -> str:
    """SHA-256 hex digest, for fingerprinting only."""
    return hashlib.sha256(_utf8(data)).hexdigest()


def derive_fernet_key(key: str) -> bytes:
    """Turn an arbitrary key string into a 32-byte url-safe Fernet key."""
    try:
        digest = hashlib.sha256(key.encode('utf-8')).digest()
    except UnicodeEncodeError:
        raise ConfigurationError("Encryption key is not valid UTF-8 text") from None
    return base64.urlsafe_b64encode(digest)


def parse_previous_keys(raw: Optional[str]) -> Dict[str, str]:
    """Parse ``"id=key,id=key"`` into a dict of retired keys."""
    keys = {}
    if not raw:
        return keys
    for entry in raw.split(','):
        entry = entry.strip()
        if not entry:
            continue
        key_id, sep, key = entry.partition('=')
        if not sep or not key_id.strip() or not key:
            raise ConfigurationError(f"Malformed previous key entry for id '{key_id.strip()}'")
        keys[key_id.strip()] = key
    return keys


def _check_key_id(key_id: str) -> None:
    if not key_id or KEY_ID_SEPARATOR in key_id:
        raise ConfigurationError(f"Invalid key id: {key_id!r}")


class KeyProvider(ABC):
    """Source of encryption keys, addressed by key id."""

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    def get_active_key(self) -> Tuple[str, str]:
        """Return ``(key_id, key)`` used for new ciphertexts."""

    @abstractmethod
    def get_key_by_id(self, key_id: str) -> str:
        """Return the key for ``key_id`` or raise DecryptionError."""


class StaticKeyProvider(KeyProvider):
    """One active key for the process lifetime, plus optional retired keys."""

    def __init__(self, key: Optional[str], key_id: str = DEFAULT_KEY_ID,
                 previous_keys: Optional[Dict[str, str]] = None):
        _check_key_id(key_id)
        for old_id in (previous_keys or {}):
            _check_key_id(old_id)

        self._key = key
        self._key_id = key_id
        self._keys = dict(previous_keys or {})
        if key:
            self._keys[key_id] = key
            if len(key) < MIN_KEY_LENGTH:
                logger.warning(
                    "Encryption key '%s' is shorter than %d characters",
                    key_id, MIN_KEY_LENGTH
                )

    @property
    def configured(self) -> bool:
        return bool(self._key)

    def get_active_key(self) -> Tuple[str, str]:
        if not self._key:
            raise ConfigurationError("ENCRYPTION_KEY not configured")
        return self._key_id, self._key

    def get_key_by_id(self, key_id: str) -> str:
        if not self._key:
            raise ConfigurationError("ENCRYPTION_KEY not configured")
        try:
            return self._keys[key_id]
        except KeyError:
            raise DecryptionError(f"Unknown key id: {key_id!r}") from None


class SecretCodec:
    """Encrypt/decrypt secrets for storage in a text column."""

    def __init__(self, key_provider: KeyProvider):
        self.key_provider = key_provider
        self._ciphers: Dict[str, Fernet] = {}

    @classmethod
    def from_key(cls, key: Optional[str], key_id: str = DEFAULT_KEY_ID) -> 'SecretCodec':
        return cls(StaticKeyProvider(key, key_id=key_id))

    @classmethod
    def from_config(cls, config) -> 'SecretCodec':
        """Build a codec from a Flask config mapping."""
        provider = StaticKeyProvider(
            config.get('ENCRYPTION_KEY'),
            key_id=config.get('ENCRYPTION_KEY_ID') or DEFAULT_KEY_ID,
            previous_keys=parse_previous_keys(config.get('ENCRYPTION_PREVIOUS_KEYS')),
        )
        return cls(provider)

    def _cipher(self, key: str) -> Fernet:
        cipher = self._ciphers.get(key)
        if cipher is None:
            cipher = self._ciphers[key] = Fernet(derive_fernet_key(key))
        return cipher

    def encrypt(self, plaintext: str) -> str:
        """Encrypt string and return ``key_id:token``."""
        key_id, key = self.key_provider.get_active_key()
        token = self._cipher(key).encrypt(_utf8(plaintext))
        return f"{key_id}{KEY_ID_SEPARATOR}{token.decode('ascii')}"

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a value produced by encrypt()."""
        # Surface a missing key before looking at the input
        self.key_provider.get_active_key()

        key_id, token = self._split(ciphertext)
        key = self.key_provider.get_key_by_id(key_id)
        try:
            data = self._cipher(key).decrypt(token.encode('ascii'))
        except (InvalidToken, UnicodeEncodeError):
            raise DecryptionError("Decryption failed - invalid key or corrupted data") from None
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError:
            raise DecryptionError("Decrypted payload is not valid UTF-8") from None

    def hash(self, data: str) -> str:
        return hash_data(data)

    def is_valid_encrypted_data(self, ciphertext: str) -> bool:
        """Best-effort probe: True if ciphertext decrypts with the current keys."""
        try:
            self.decrypt(ciphertext)
        except SecretCodecError:
            return False
        return True

    def encrypt_object(self, value: Any) -> str:
        """Serialize value to JSON, then encrypt."""
        try:
            payload = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize object: {e}") from e
        return self.encrypt(payload)

    def decrypt_object(self, ciphertext: str) -> Any:
        """Decrypt, then parse the JSON payload."""
        payload = self.decrypt(ciphertext)
        try:
            return json.loads(payload)
        except ValueError as e:
            raise PayloadDecodeError(f"Failed to decode object: {e}") from e

    def key_id_of(self, ciphertext: str) -> str:
        return self._split(ciphertext)[0]

    def rotate(self, ciphertext: str) -> str:
        """Re-encrypt ciphertext under the active key."""
        return self.encrypt(self.decrypt(ciphertext))

    @staticmethod
    def _split(ciphertext: str) -> Tuple[str, str]:
        if not isinstance(ciphertext, str) or not ciphertext:
            raise DecryptionError("Ciphertext is empty or not a string")
        key_id, sep, token = ciphertext.partition(KEY_ID_SEPARATOR)
        if not sep or not key_id or not token:
            raise DecryptionError("Ciphertext is not in key_id:token format")
        return key_id, token


def init_app(app) -> SecretCodec:
    """Attach a codec built from app.config to the Flask app."""
    codec = SecretCodec.from_config(app.config)
    if not codec.key_provider.configured:
        app.logger.error("ENCRYPTION_KEY not configured; credential storage is unavailable")
    app.extensions['secret_codec'] = codec
    return codec


def get_codec() -> SecretCodec:
    """Codec for the current Flask app."""
    from flask import current_app
    return current_app.extensions['secret_codec']
