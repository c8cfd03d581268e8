"""Fernet encryption for broker secrets at rest (API secrets, MT passwords)."""

from cryptography.fernet import Fernet, InvalidToken

from tradedesk.config import settings

_fernet: Fernet | None = None


class SecretDecryptionError(ValueError):
    """Stored secret cannot be read with the configured key."""


def _get_fernet() -> Fernet:
    global _fernet
    if _fernet is None:
        key = settings.encryption_key
        if not key:
            raise RuntimeError(
                "TD_ENCRYPTION_KEY not set. Generate one with: "
                "python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
            )
        _fernet = Fernet(key.encode())
    return _fernet


def encrypt_secret(plaintext: str) -> str:
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> str:
    """Decrypt a stored secret; a rotated or wrong key raises SecretDecryptionError."""
    try:
        return _get_fernet().decrypt(ciphertext.encode()).decode()
    except InvalidToken as e:
        raise SecretDecryptionError(
            "stored secret cannot be decrypted; re-enter the credentials"
        ) from e
