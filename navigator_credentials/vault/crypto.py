"""
Vault Crypto Core: Key derivation and access key encryption/decryption.

Stored access keys are sealed with an AEAD cipher:
    HKDF(MASTER_KEY, "navigator-credentials-access-key") → AES-GCM → (hex ciphertext, iv)

The IV travels next to the ciphertext and is required to decrypt it.

Security Note:
    Never log plaintext or ciphertext values.
    IVs are random 96-bit; collision probability negligible under normal usage.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import DecryptionError, EncryptionError
from .config import KEY_LENGTH

logger = logging.getLogger("navigator.credentials")

IV_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
ACCESS_KEY_CONTEXT = "navigator-credentials-access-key"

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


@dataclass(frozen=True)
class CipherText:
    """Hex-encoded ciphertext and the IV it was produced with."""

    ciphertext: str
    iv: bytes

    def __repr__(self) -> str:
        return (
            f"CipherText(ciphertext=<{len(self.ciphertext)} hex chars>, "
            f"iv=<{len(self.iv)} bytes>)"
        )


def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte encryption key using HKDF-SHA256.

    Args:
        seed: Input key material (master key bytes).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # same master key, same derived key
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


class CipherService:
    """Encrypts and decrypts short strings under the master key.

    The derived key is computed once at construction and never changes;
    instances hold no other state and are safe to share between tasks.

    Args:
        master_key: Raw 32-byte master key, or None when it is unavailable.
        backend: AEAD backend name, ``aesgcm`` or ``chacha20``.
    """

    def __init__(self, master_key: Optional[bytes], backend: str = "aesgcm") -> None:
        try:
            self._cipher_cls = _CIPHERS[backend.lower()]
        except KeyError:
            raise ValueError(f"Unsupported cipher backend: {backend}") from None
        self._cipher = None
        if master_key is not None:
            if len(master_key) != KEY_LENGTH:
                raise ValueError(
                    f"master_key must be exactly {KEY_LENGTH} bytes, got {len(master_key)}"
                )
            self._cipher = self._cipher_cls(derive_key(master_key, ACCESS_KEY_CONTEXT))

    @classmethod
    def from_config(cls, config) -> "CipherService":
        """Build a CipherService from a :class:`VaultConfig`."""
        return cls(config.master_key, backend=config.cipher_backend)

    def encrypt(self, plaintext: str) -> CipherText:
        """Encrypt plaintext with a freshly generated IV.

        Args:
            plaintext: Text to encrypt.

        Returns:
            CipherText with hex ciphertext (payload + tag) and the IV.

        Raises:
            EncryptionError: If the master key is unavailable.
        """
        if self._cipher is None:
            raise EncryptionError("Master key is unavailable", operation="encrypt")
        iv = os.urandom(IV_SIZE)
        ct = self._cipher.encrypt(iv, plaintext.encode("utf-8"), None)
        return CipherText(ciphertext=ct.hex(), iv=iv)

    def decrypt(
        self,
        ciphertext: str,
        iv: Union[bytes, str],
        field: Optional[str] = None,
    ) -> str:
        """Decrypt a hex ciphertext with the IV produced alongside it.

        Args:
            ciphertext: Hex-encoded ciphertext from :meth:`encrypt`.
            iv: IV bytes, or their hex form as kept in text fields.
            field: Name of the field being decrypted, used in errors only.

        Returns:
            Decrypted plaintext.

        Raises:
            DecryptionError: On a missing master key, malformed or truncated
                ciphertext, a wrong IV, or a failed authentication tag.
        """
        if self._cipher is None:
            raise DecryptionError(
                "Master key is unavailable", field=field, operation="decrypt"
            )
        try:
            if isinstance(iv, str):
                iv = bytes.fromhex(iv)
            ct = bytes.fromhex(ciphertext)
        except (TypeError, ValueError) as err:
            raise DecryptionError(
                "Ciphertext or IV is not valid hex", field=field, operation="decrypt"
            ) from err
        if len(iv) != IV_SIZE:
            raise DecryptionError(
                f"IV must be {IV_SIZE} bytes, got {len(iv)}",
                field=field,
                operation="decrypt",
            )
        if len(ct) < TAG_SIZE:
            raise DecryptionError(
                f"Ciphertext too short: {len(ct)} bytes (minimum {TAG_SIZE})",
                field=field,
                operation="decrypt",
            )
        try:
            plaintext = self._cipher.decrypt(iv, ct, None)
            return plaintext.decode("utf-8")
        except InvalidTag as err:
            raise DecryptionError(
                "Ciphertext does not authenticate with the given IV and master key",
                field=field,
                operation="decrypt",
            ) from err
        except UnicodeDecodeError as err:
            raise DecryptionError(
                "Decrypted value is not valid UTF-8", field=field, operation="decrypt"
            ) from err
