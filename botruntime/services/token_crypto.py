"""Bot tokens at rest: Fernet ciphertext for reading back, sha256 digest for lookup."""
import base64
import hashlib
import logging
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

KDF_SALT = b"botruntime_tokens"
KDF_ITERATIONS = 100_000


@lru_cache(maxsize=8)
def _fernet_for(secret: str) -> Fernet:
    # key derivation is slow on purpose; derive once per secret
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=KDF_SALT, iterations=KDF_ITERATIONS)
    return Fernet(base64.urlsafe_b64encode(kdf.derive(secret.encode())))


def encrypt_token(plain: str, secret: str) -> str:
    if not plain:
        return ""
    return _fernet_for(secret).encrypt(plain.encode()).decode()


def decrypt_token(cipher: str, secret: str) -> Optional[str]:
    """Plain token, or None when the ciphertext was written under another key."""
    if not cipher:
        return None
    try:
        return _fernet_for(secret).decrypt(cipher.encode()).decode()
    except (InvalidToken, ValueError):
        logger.warning("token_decrypt_failed")
        return None


def token_digest(plain: str) -> str:
    return hashlib.sha256((plain or "").strip().encode()).hexdigest()


def mask_token(token: Optional[str]) -> str:
    """Masking for logs: the bot id is kept and the secret part hidden."""
    t = (token or "").strip()
    if ":" in t:
        bot_id, _secret = t.split(":", 1)
        return f"{bot_id}:****"
    if len(t) < 4:
        return "****"
    return "****" + t[-4:]
