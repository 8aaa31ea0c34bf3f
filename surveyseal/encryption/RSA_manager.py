#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: RSA_manager.py

    Description:
        Holds SurveySeal's RSA private key for the duration of one request and
        unwraps the AES-256 key the browser wrapped with RSA-OAEP (SHA-256).
        A PKCS#1 v1.5 fallback is available for legacy clients but is only
        tried when explicitly enabled, and OAEP is always attempted first.
        Key material comes from the configuration store as PEM text; a
        missing or unparseable key is a configuration error, never a client
        error.
"""

import typing
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives import serialization, hashes
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError, CryptoError, LengthError, SurveySealError
import surveyseal.constants as CONSTANTS


def _oaep_sha256() -> padding.OAEP:
    return padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=None)


class RSAManager:

    """
        Initialize an RSAManager bound to an already parsed RSA private key.

        @param private_key (RSAPrivateKey): Key used to unwrap envelope keys.
        @param allow_legacy_pkcs1v15 (bool): Try PKCS#1 v1.5 after OAEP fails.
        @require isinstance(private_key, rsa.RSAPrivateKey)
        @ensures The manager can unwrap keys; no key material is logged.
    """
    def __init__(self, private_key: rsa.RSAPrivateKey, allow_legacy_pkcs1v15: bool = False) -> None:

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ConfigurationError("Loaded key is not a valid RSA private key", "private_key", ApplicationCodes.RSA_KEY_LOAD_ERROR)

        self._private_key = private_key
        self._allow_legacy_pkcs1v15 = bool(allow_legacy_pkcs1v15)



    """
        Parse a PEM-encoded RSA private key.

        @param private_key_pem (str|bytes|None): PKCS#1 or PKCS#8 PEM text from the configuration store.
        @param allow_legacy_pkcs1v15 (bool): Forwarded to the constructor.
        @return RSAManager: Manager bound to the parsed key.
        @ensures Missing or unparseable key material raises ConfigurationError.
    """
    @classmethod
    def from_pem(cls, private_key_pem: typing.Union[str, bytes, None], allow_legacy_pkcs1v15: bool = False) -> "RSAManager":

        try:
            if private_key_pem is None or (isinstance(private_key_pem, (str, bytes)) and not private_key_pem.strip()):
                raise ConfigurationError("RSA private key is not configured", CONSTANTS.CONFIG_PRIVATE_KEY_PEM)

            if isinstance(private_key_pem, str):
                # Stores that flatten newlines keep them as literal "\n"
                private_key_pem = private_key_pem.replace("\\n", "\n").encode("utf-8")

            if not isinstance(private_key_pem, bytes):
                raise ConfigurationError("RSA private key must be PEM text", CONSTANTS.CONFIG_PRIVATE_KEY_PEM, ApplicationCodes.RSA_KEY_LOAD_ERROR)

            private_key = serialization.load_pem_private_key(private_key_pem, password=None)

            return cls(private_key, allow_legacy_pkcs1v15)

        except SurveySealError:
            raise
        except Exception:
            raise ConfigurationError("Failed parsing RSA private key", CONSTANTS.CONFIG_PRIVATE_KEY_PEM, ApplicationCodes.RSA_KEY_LOAD_ERROR)



    """
        Serialize the public half of the loaded key.

        @return str: SubjectPublicKeyInfo PEM text.
    """
    def get_public_key_pem(self) -> str:

        public_key = self._private_key.public_key()

        return public_key.public_bytes(encoding=serialization.Encoding.PEM, format=serialization.PublicFormat.SubjectPublicKeyInfo).decode("utf-8")



    """
        Decrypt RSA ciphertext, preferring OAEP and falling back to PKCS#1 v1.5 only when enabled.

        @param encrypted_data (bytes): RSA ciphertext.
        @param stage (str): Stage name reported on failure.
        @return bytes: Non-empty decrypted bytes.
        @ensures Raises CryptoError when no attempted padding scheme decrypts or the result is empty.
    """
    def _decrypt(self, encrypted_data: bytes, stage: str) -> bytes:

        if not isinstance(encrypted_data, (bytes, bytearray)):
            raise CryptoError(stage, "Encrypted data must be bytes", ApplicationCodes.INVALID_TYPE)

        if len(encrypted_data) == 0:
            raise CryptoError(stage, "Encrypted data cannot be empty", ApplicationCodes.INVALID_CIPHERTEXT)

        schemes = [_oaep_sha256()]
        if self._allow_legacy_pkcs1v15:
            schemes.append(padding.PKCS1v15())

        decrypted = None
        for scheme in schemes:
            try:
                decrypted = self._private_key.decrypt(bytes(encrypted_data), scheme)
                break

            except (ValueError, UnsupportedAlgorithm):
                continue

        if decrypted is None:
            raise CryptoError(stage, "RSA decryption failed under every accepted padding scheme", ApplicationCodes.RSA_DECRYPT_ERROR)

        if len(decrypted) == 0:
            raise CryptoError(stage, "RSA decryption produced an empty result", ApplicationCodes.RSA_DECRYPT_ERROR)

        return decrypted



    """
        Unwrap the envelope's AES-256 key.

        @param wrapped_key (bytes): RSA ciphertext of the raw 32-byte AES key.
        @return bytes: Exactly 32 bytes of key material.
        @ensures Any other length raises LengthError before the AES stage runs.
    """
    def unwrap_key(self, wrapped_key: bytes) -> bytes:

        try:
            aes_key = self._decrypt(wrapped_key, CONSTANTS._STAGE_RSA_UNWRAP)

            if len(aes_key) != CONSTANTS._AES_KEY_LEN_BYTES:
                raise LengthError("aesKey", CONSTANTS._AES_KEY_LEN_BYTES, len(aes_key), ApplicationCodes.INVALID_AES_KEY)

            return aes_key

        except SurveySealError:
            raise
        except Exception:
            raise CryptoError(CONSTANTS._STAGE_RSA_UNWRAP, "RSA key unwrap failure", ApplicationCodes.RSA_DECRYPT_ERROR)



    """
        Decrypt a legacy envelope whose RSA layer carries the JSON payload itself.

        @param ciphertext (bytes): RSA ciphertext of the UTF-8 JSON payload.
        @return bytes: Decrypted payload bytes.
    """
    def decrypt_payload(self, ciphertext: bytes) -> bytes:

        try:
            return self._decrypt(ciphertext, CONSTANTS._STAGE_RSA_UNWRAP)

        except SurveySealError:
            raise
        except Exception:
            raise CryptoError(CONSTANTS._STAGE_RSA_UNWRAP, "RSA payload decryption failure", ApplicationCodes.RSA_DECRYPT_ERROR)



    """
        Wrap data under a public key with RSA-OAEP (SHA-256), as the browser client does.

        @param data (bytes): Key material or small payload to wrap.
        @param public_key_pem (str): SubjectPublicKeyInfo PEM text.
        @return bytes: RSA-OAEP ciphertext.
    """
    @staticmethod
    def wrap_key(data: bytes, public_key_pem: str) -> bytes:

        try:
            if not isinstance(data, (bytes, bytearray)) or len(data) == 0:
                raise CryptoError("rsa-wrap", "Data to wrap must be non-empty bytes", ApplicationCodes.INVALID_TYPE)

            if not isinstance(public_key_pem, str) or not public_key_pem.strip():
                raise ConfigurationError("RSA public key PEM must be a non-empty string", CONSTANTS.CONFIG_PUBLIC_KEY_PEM)

            public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))

            if not isinstance(public_key, rsa.RSAPublicKey):
                raise ConfigurationError("Parsed key is not an RSA public key", CONSTANTS.CONFIG_PUBLIC_KEY_PEM, ApplicationCodes.INVALID_CONFIGURATION)

            return public_key.encrypt(bytes(data), _oaep_sha256())

        except SurveySealError:
            raise
        except Exception:
            raise CryptoError("rsa-wrap", "RSA-OAEP encryption failure", ApplicationCodes.RSA_ENCRYPT_ERROR)
