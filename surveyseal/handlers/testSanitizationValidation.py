#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testSanitizationValidation.py

    Description:
        Tests for the base64 codec, UTF-8 plaintext decoding and JSON parsing
        helpers used by the decryption pipeline.
"""

import base64
import re
import unittest
import surveyseal.handlers.sanitization_validation as VALIDATION
from surveyseal.handlers.error_handler import (
    ApplicationCodes,
    CryptoError,
    DecodeError,
    EncodingError,
    HTTPCodes,
    InputError,
    ParseError,
)


####################################################################################################
#                                         Base64
####################################################################################################

class TestBase64(unittest.TestCase):

    """
        Characters outside the base64 alphabet must be rejected before decoding.
    """
    def test_rejects_characters_outside_alphabet(self):

        for bad in ("abc!", "ab-_", "QUJDé", "QUJD.QUJD"):
            with self.assertRaises(EncodingError) as cm:
                VALIDATION.validate_base64_text(bad, "iv")

            exc = cm.exception
            self.assertEqual(exc.application_code, ApplicationCodes.INVALID_BASE64)
            self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)
            self.assertEqual(exc.label, "iv")
            self.assertTrue(exc.detail.startswith("iv: "))

    """
        Whitespace, including newlines from wrapped output, is stripped before validation.
    """
    def test_strips_whitespace(self):

        clean = VALIDATION.validate_base64_text(" QUJD\nREVG\r\n ", "ciphertext")

        self.assertEqual("QUJDREVG", clean)
        self.assertEqual(b"ABCDEF", VALIDATION.decode_base64_field(" QUJD\nREVG ", "ciphertext"))

    """
        Empty text, non-strings and lengths that are not a multiple of 4 are rejected.
    """
    def test_rejects_empty_non_string_and_bad_length(self):

        for bad in ("", "   ", None, 123, b"QUJD", "QUJ", "QUJDR"):
            with self.assertRaises(EncodingError):
                VALIDATION.validate_base64_text(bad, "key")

    """
        Padding in the middle of the text passes the alphabet check but fails the decoder.
    """
    def test_rejects_misplaced_padding(self):

        with self.assertRaises(EncodingError) as cm:
            VALIDATION.decode_base64_field("QQ==QUJD", "ciphertext")

        self.assertEqual(cm.exception.label, "ciphertext")

    """
        Decoding never yields partial output for malformed input.
    """
    def test_decode_all_or_nothing(self):

        with self.assertRaises(EncodingError):
            VALIDATION.decode_base64_field("QUJD===", "key")

    """
        Encoding produces standard padded base64 that decodes back to the input.
    """
    def test_encode_bytes_to_base64(self):

        raw = bytes(range(256))
        text = VALIDATION.encode_bytes_to_base64(raw)

        self.assertRegex(text, re.compile(r"^[A-Za-z0-9+/=]+$"))
        self.assertEqual(base64.b64encode(raw).decode("ascii"), text)
        self.assertEqual(raw, VALIDATION.decode_base64_field(text, "raw"))

        with self.assertRaises(InputError):
            VALIDATION.encode_bytes_to_base64("text")  # type: ignore[arg-type]

    """
        Decoding valid text and re-encoding it reproduces the same text.
    """
    def test_decode_then_encode_is_stable(self):

        for text in ("QQ==", "QUI=", "QUJD", "AAECAwQFBgcICQoLDA0ODw=="):
            self.assertEqual(text, VALIDATION.encode_bytes_to_base64(VALIDATION.decode_base64_field(text, "x")))

    """
        Text with nonzero trailing bits before the padding is rejected instead of aliasing a canonical value.
    """
    def test_rejects_non_canonical_trailing_bits(self):

        for bad in ("QR==", "QUJ=", "QUK="):
            with self.assertRaises(EncodingError) as cm:
                VALIDATION.decode_base64_field(bad, "iv")

            self.assertEqual(cm.exception.label, "iv")
            self.assertIn("non-canonical", cm.exception.detail)

        self.assertEqual(b"A", VALIDATION.decode_base64_field("QQ==", "iv"))



####################################################################################################
#                                     UTF-8 / JSON
####################################################################################################

class TestPlaintextDecoding(unittest.TestCase):

    """
        Valid UTF-8 decodes to the same text.
    """
    def test_decode_valid_utf8(self):

        text = '{"clientId":"café"}'

        self.assertEqual(text, VALIDATION.decode_plaintext_bytes(text.encode("utf-8")))

    """
        Invalid UTF-8 raises DecodeError with no byte previews unless diagnostics are on.
    """
    def test_invalid_utf8_without_diagnostics(self):

        raw = b"\xff\xfe\x00garbage"

        with self.assertRaises(DecodeError) as cm:
            VALIDATION.decode_plaintext_bytes(raw)

        exc = cm.exception
        self.assertEqual(exc.application_code, ApplicationCodes.INVALID_UTF8)
        self.assertEqual(exc.http_code, HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(exc.byte_count, len(raw))
        self.assertEqual("", exc.hex_preview)
        self.assertEqual("", exc.latin1_preview)
        self.assertNotIn("hex:", exc.detail)

    """
        With diagnostics on, previews are attached and bounded to 64 bytes.
    """
    def test_invalid_utf8_with_diagnostics(self):

        raw = b"\xff" + b"A" * 200

        with self.assertRaises(DecodeError) as cm:
            VALIDATION.decode_plaintext_bytes(raw, debug_diagnostics=True)

        exc = cm.exception
        self.assertEqual(128, len(exc.hex_preview))
        self.assertTrue(exc.hex_preview.startswith("ff41"))
        self.assertEqual(64, len(exc.latin1_preview))
        self.assertIn("hex:", exc.detail)

    """
        Previews of short buffers cover the whole buffer.
    """
    def test_build_diagnostic_previews_short_input(self):

        hex_preview, latin1_preview = VALIDATION.build_diagnostic_previews(b"\x00\xe9")

        self.assertEqual("00e9", hex_preview)
        self.assertEqual("\x00é", latin1_preview)

    """
        An empty plaintext is a cryptographic failure, not an empty document.
    """
    def test_empty_plaintext_is_crypto_error(self):

        with self.assertRaises(CryptoError) as cm:
            VALIDATION.decode_plaintext_bytes(b"")

        self.assertEqual(cm.exception.application_code, ApplicationCodes.EMPTY_PLAINTEXT)
        self.assertEqual(cm.exception.stage, "utf8-decode")

    """
        Malformed JSON raises ParseError carrying the parser message; no repair is attempted.
    """
    def test_parse_malformed_json(self):

        with self.assertRaises(ParseError) as cm:
            VALIDATION.parse_plaintext_json('{"pointer": }')

        exc = cm.exception
        self.assertEqual(exc.application_code, ApplicationCodes.INVALID_PAYLOAD_JSON)
        self.assertEqual(exc.http_code, HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertTrue(exc.parser_message)
        self.assertIn(exc.parser_message, exc.detail)

    """
        Trailing garbage after a valid object is not tolerated.
    """
    def test_parse_rejects_trailing_data(self):

        with self.assertRaises(ParseError):
            VALIDATION.parse_plaintext_json('{"a": 1} trailing')

    """
        Valid JSON that is not an object is rejected.
    """
    def test_parse_rejects_non_object(self):

        for text in ("[1, 2]", '"text"', "3", "null"):
            with self.assertRaises(ParseError) as cm:
                VALIDATION.parse_plaintext_json(text)

            self.assertIn("expected a JSON object", cm.exception.detail)

    def test_parse_object(self):

        self.assertEqual({"clientId": "abc", "pointer": 3}, VALIDATION.parse_plaintext_json('{"clientId":"abc","pointer":3}'))

    def test_encode_json_text_is_compact(self):

        self.assertEqual('{"a":[1,2]}', VALIDATION.encode_json_text({"a": [1, 2]}))


if __name__ == "__main__":
    unittest.main()
