#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: AES_manager.py

    Description:
        Implements the AES-256-CBC / PKCS7 layer of the SurveySeal envelope.
        Enforces key, IV and ciphertext length preconditions before the
        cipher runs, and treats invalid padding as conclusive evidence of a
        wrong key, wrong IV or corrupted transport: decryption aborts and no
        best-effort plaintext is ever returned. Also provides the matching
        encrypt side and key/IV generation for clients and tests.
"""


import os
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives import padding
from surveyseal.handlers.error_handler import ApplicationCodes, CryptoError, LengthError, SurveySealError
import surveyseal.constants as CONSTANTS


_AES_ENCRYPT_STAGE = "aes-encrypt"


class AESManager:

    """
        Generate a fresh 32-byte AES-256 key using a CSPRNG.

        @return bytes: A newly generated 32-byte AES-256 key.
    """
    @staticmethod
    def generate_key() -> bytes:

        return os.urandom(CONSTANTS._AES_KEY_LEN_BYTES)


    """
        Generate a fresh 16-byte CBC initialization vector.

        @return bytes: A newly generated 16-byte IV.
    """
    @staticmethod
    def generate_iv() -> bytes:

        return os.urandom(CONSTANTS._AES_IV_LEN_BYTES)



    """
        Check the key and IV sizes shared by encrypt and decrypt.

        @ensures Raises a distinct LengthError for each violated size.
    """
    @staticmethod
    def _check_key_and_iv(key: bytes, iv: bytes) -> None:

        if not isinstance(key, (bytes, bytearray)):
            raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "AES key must be raw bytes", ApplicationCodes.INVALID_TYPE)

        if len(key) != CONSTANTS._AES_KEY_LEN_BYTES:
            raise LengthError("aesKey", CONSTANTS._AES_KEY_LEN_BYTES, len(key), ApplicationCodes.INVALID_AES_KEY)

        if not isinstance(iv, (bytes, bytearray)):
            raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "IV must be raw bytes", ApplicationCodes.INVALID_TYPE)

        if len(iv) != CONSTANTS._AES_IV_LEN_BYTES:
            raise LengthError("iv", CONSTANTS._AES_IV_LEN_BYTES, len(iv), ApplicationCodes.INVALID_IV)



    """
        Decrypt AES-256-CBC ciphertext and strip PKCS7 padding.

        @param ciphertext (bytes): Non-empty ciphertext, a multiple of 16 bytes long.
        @param key (bytes): 32-byte AES key.
        @param iv (bytes): 16-byte initialization vector.

        @return bytes: Non-empty plaintext.

        @ensures Length violations raise LengthError before decryption; bad padding or
                 an empty plaintext raise CryptoError and no plaintext bytes escape.
    """
    def decrypt(self, ciphertext: bytes, key: bytes, iv: bytes) -> bytes:

        try:
            self._check_key_and_iv(key, iv)

            if not isinstance(ciphertext, (bytes, bytearray)):
                raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "Ciphertext must be raw bytes", ApplicationCodes.INVALID_TYPE)

            if len(ciphertext) == 0 or len(ciphertext) % CONSTANTS._AES_BLOCK_LEN_BYTES != 0:
                raise LengthError("ciphertext", f"a non-zero multiple of {CONSTANTS._AES_BLOCK_LEN_BYTES}", len(ciphertext), ApplicationCodes.INVALID_CIPHERTEXT)

            decryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(bytes(iv))).decryptor()
            padded = decryptor.update(bytes(ciphertext)) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            try:
                plaintext = unpadder.update(padded) + unpadder.finalize()
            except ValueError:
                raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "Invalid PKCS7 padding (wrong key, wrong IV or corrupted ciphertext)", ApplicationCodes.AES_DECRYPT_ERROR)

            if len(plaintext) == 0:
                raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "AES decryption produced an empty plaintext", ApplicationCodes.EMPTY_PLAINTEXT)

            return plaintext

        except SurveySealError:
            raise
        except Exception:
            raise CryptoError(CONSTANTS._STAGE_AES_DECRYPT, "AES-CBC decryption failure", ApplicationCodes.AES_DECRYPT_ERROR)



    """
        Encrypt plaintext with AES-256-CBC and PKCS7 padding, as the browser client does.

        @param plaintext (bytes): Non-empty plaintext.
        @param key (bytes): 32-byte AES key.
        @param iv (bytes): 16-byte initialization vector.
        @return bytes: Ciphertext, a multiple of 16 bytes long.
    """
    def encrypt(self, plaintext: bytes, key: bytes, iv: bytes) -> bytes:

        try:
            self._check_key_and_iv(key, iv)

            if not isinstance(plaintext, (bytes, bytearray)) or len(plaintext) == 0:
                raise CryptoError(_AES_ENCRYPT_STAGE, "Plaintext must be non-empty bytes", ApplicationCodes.INVALID_TYPE)

            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(bytes(plaintext)) + padder.finalize()

            encryptor = Cipher(algorithms.AES(bytes(key)), modes.CBC(bytes(iv))).encryptor()

            return encryptor.update(padded) + encryptor.finalize()

        except SurveySealError:
            raise
        except Exception:
            raise CryptoError(_AES_ENCRYPT_STAGE, "AES-CBC encryption failure", ApplicationCodes.AES_ENCRYPT_ERROR)
