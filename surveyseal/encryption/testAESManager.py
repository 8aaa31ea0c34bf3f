#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: testAESManager.py

    Description:
        Test suite for AESManager (AES-256-CBC / PKCS7). Verifies key and IV
        generation, encrypt/decrypt correctness, the length preconditions
        that run before the cipher, and that padding failures abort with
        CryptoError rather than returning best-effort plaintext.
"""

import unittest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from surveyseal.encryption.AES_manager import AESManager
from surveyseal.handlers.error_handler import CryptoError, LengthError, ApplicationCodes, HTTPCodes


class TestAESManager(unittest.TestCase):

    PLAINTEXT = b'{"clientId":"abc","pointer":3}'

    """
        Prepare a fresh AESManager with a random key and IV.
    """
    def setUp(self) -> None:

        self.manager = AESManager()
        self.key = AESManager.generate_key()
        self.iv = AESManager.generate_iv()

    """
        generate_key() and generate_iv() must return fresh 32 and 16 byte values.
    """
    def test_generate_key_and_iv_properties(self):

        self.assertEqual(32, len(AESManager.generate_key()))
        self.assertEqual(16, len(AESManager.generate_iv()))
        self.assertNotEqual(AESManager.generate_key(), AESManager.generate_key())
        self.assertNotEqual(AESManager.generate_iv(), AESManager.generate_iv())

    """
        decrypt(encrypt(p)) must return p.
    """
    def test_encrypt_then_decrypt(self):

        ciphertext = self.manager.encrypt(self.PLAINTEXT, self.key, self.iv)

        self.assertEqual(0, len(ciphertext) % 16)
        self.assertEqual(self.PLAINTEXT, self.manager.decrypt(ciphertext, self.key, self.iv))

    """
        A plaintext that is an exact block multiple gains a full padding block.
    """
    def test_block_aligned_plaintext_gains_padding_block(self):

        ciphertext = self.manager.encrypt(b"x" * 32, self.key, self.iv)

        self.assertEqual(48, len(ciphertext))
        self.assertEqual(b"x" * 32, self.manager.decrypt(ciphertext, self.key, self.iv))

    """
        A 16-byte key must be rejected with LengthError naming expected 32 vs actual 16.
    """
    def test_decrypt_rejects_short_key(self):

        ciphertext = self.manager.encrypt(self.PLAINTEXT, self.key, self.iv)

        with self.assertRaises(LengthError) as cm:
            self.manager.decrypt(ciphertext, self.key[:16], self.iv)

        exc = cm.exception
        self.assertEqual(exc.application_code, ApplicationCodes.INVALID_AES_KEY)
        self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)
        self.assertEqual(exc.field, "aesKey")
        self.assertEqual(exc.expected, 32)
        self.assertEqual(exc.actual, 16)
        self.assertIn("expected 32", exc.detail)
        self.assertIn("got 16", exc.detail)

    """
        IV lengths other than 16 must be rejected with LengthError.
    """
    def test_decrypt_rejects_bad_iv_length(self):

        ciphertext = self.manager.encrypt(self.PLAINTEXT, self.key, self.iv)

        for bad_iv in (b"", self.iv[:12], self.iv + b"\x00"):
            with self.assertRaises(LengthError) as cm:
                self.manager.decrypt(ciphertext, self.key, bad_iv)

            self.assertEqual(cm.exception.field, "iv")
            self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_IV)

    """
        Empty ciphertext and ciphertext that is not a block multiple must be rejected with LengthError.
    """
    def test_decrypt_rejects_bad_ciphertext_length(self):

        for bad in (b"", b"\x00" * 15, b"\x00" * 17, b"\x00" * 33):
            with self.assertRaises(LengthError) as cm:
                self.manager.decrypt(bad, self.key, self.iv)

            exc = cm.exception
            self.assertEqual(exc.field, "ciphertext")
            self.assertEqual(exc.application_code, ApplicationCodes.INVALID_CIPHERTEXT)
            self.assertEqual(exc.actual, len(bad))
            self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)

    """
        Ciphertext produced under a different key must fail padding validation with CryptoError.
    """
    def test_decrypt_wrong_key_fails_padding(self):

        # Wrong-key output still ends in valid padding about once in 256 tries
        ciphertext = self.manager.encrypt(self.PLAINTEXT, self.key, self.iv)

        failures = 0
        for _ in range(8):
            other_key = AESManager.generate_key()
            try:
                recovered = self.manager.decrypt(ciphertext, other_key, self.iv)
            except CryptoError as e:
                failures += 1
                self.assertEqual(e.stage, "aes-decrypt")
                self.assertEqual(e.application_code, ApplicationCodes.AES_DECRYPT_ERROR)
                self.assertEqual(e.http_code, HTTPCodes.INTERNAL_SERVER_ERROR)
            else:
                self.assertNotEqual(self.PLAINTEXT, recovered)

        self.assertGreater(failures, 0)

    """
        A block that decrypts to a full block of padding yields an empty plaintext, which is a CryptoError.
    """
    def test_decrypt_empty_plaintext_is_crypto_error(self):

        encryptor = Cipher(algorithms.AES(self.key), modes.CBC(self.iv)).encryptor()
        ciphertext = encryptor.update(bytes([16]) * 16) + encryptor.finalize()

        with self.assertRaises(CryptoError) as cm:
            self.manager.decrypt(ciphertext, self.key, self.iv)

        self.assertEqual(cm.exception.application_code, ApplicationCodes.EMPTY_PLAINTEXT)

    """
        Non-bytes inputs must be rejected with CryptoError / INVALID_TYPE.
    """
    def test_decrypt_rejects_non_bytes(self):

        with self.assertRaises(CryptoError) as cm:
            self.manager.decrypt("not-bytes", self.key, self.iv)  # type: ignore[arg-type]

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_TYPE)

        with self.assertRaises(CryptoError):
            self.manager.decrypt(b"\x00" * 16, "not-bytes", self.iv)  # type: ignore[arg-type]

    """
        encrypt() must reject an empty plaintext.
    """
    def test_encrypt_rejects_empty_plaintext(self):

        with self.assertRaises(CryptoError):
            self.manager.encrypt(b"", self.key, self.iv)


if __name__ == "__main__":
    unittest.main()
