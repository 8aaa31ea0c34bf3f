#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testDecryptionPipeline.py

    Description:
        End-to-end tests for the decryption pipeline using envelopes sealed
        the same way the browser client seals them. Covers the happy path,
        every stage's failure tagging, the length gates that must stop the
        pipeline before the cipher runs, tamper detection, and the legacy
        ciphertext-only path.
"""

import unittest
from unittest import mock
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization

from surveyseal.encryption.AES_manager import AESManager
from surveyseal.encryption.RSA_manager import RSAManager
from surveyseal.handlers.decryption_pipeline import DecryptionPipeline, PipelineResult
from surveyseal.handlers.error_handler import ApplicationCodes, HTTPCodes, InputError, LengthError, PipelineError, SurveySealError
from surveyseal.handlers.packet_handler import Envelope
from surveyseal.handlers.survey_record import SurveyRecord
from surveyseal.utilities.envelope_client import seal_legacy_payload, seal_payload
import surveyseal.handlers.sanitization_validation as VALIDATION


def _envelope(body: dict) -> Envelope:
    return Envelope(ciphertext=body["ciphertext"], wrapped_key=body.get("key"), iv=body.get("iv"))


def _flip_bit(text: str, index: int) -> str:
    raw = bytearray(VALIDATION.decode_base64_field(text, "ciphertext"))
    raw[index] ^= 0x01
    return VALIDATION.encode_bytes_to_base64(bytes(raw))


class TestPipelineResult(unittest.TestCase):

    """
        A failure short-circuits every later stage.
    """
    def test_failure_skips_later_stages(self):

        def reject(_value):
            raise InputError("bad")

        later = mock.Mock()

        result = PipelineResult.success(1).and_then("first", reject).and_then("second", later)

        self.assertFalse(result.ok)
        self.assertEqual("first", result.error.stage)
        later.assert_not_called()

        with self.assertRaises(PipelineError):
            result.unwrap()

    """
        Unexpected exceptions become a generic internal error tagged with the stage.
    """
    def test_unexpected_exception_is_internal_error(self):

        def explode(_value):
            raise RuntimeError("boom")

        result = PipelineResult.success(1).and_then("stage-x", explode)

        self.assertEqual("stage-x", result.error.stage)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, result.error.application_code)
        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, result.error.http_code)
        self.assertNotIn("boom", result.error.detail)

    def test_success_chain(self):

        result = PipelineResult.success(2).and_then("double", lambda v: v * 2)

        self.assertTrue(result.ok)
        self.assertEqual(4, result.unwrap())



class TestDecryptionPipeline(unittest.TestCase):

    PAYLOAD = {"clientId": "abc", "pointer": 3}

    @classmethod
    def setUpClass(cls) -> None:

        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")

        cls.rsa_manager = RSAManager.from_pem(pem)
        cls.public_pem = cls.rsa_manager.get_public_key_pem()

        other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.other_public_pem = RSAManager(other_key).get_public_key_pem()

    def setUp(self) -> None:
        self.pipeline = DecryptionPipeline()


    def assertStageFailure(self, result: PipelineResult, stage: str, http_code: int) -> PipelineError:

        self.assertFalse(result.ok)
        self.assertIsNone(result.value)
        self.assertEqual(stage, result.error.stage)
        self.assertEqual(http_code, result.error.http_code)
        return result.error


    """
        A well-formed envelope decrypts to the original record.
    """
    def test_happy_path(self):

        body = seal_payload(self.PAYLOAD, self.public_pem)

        result = self.pipeline.process(_envelope(body), self.rsa_manager)

        self.assertTrue(result.ok)
        record = result.unwrap()
        self.assertIsInstance(record, SurveyRecord)
        self.assertEqual("abc", record.client_id)
        self.assertEqual(3, record.pointer)
        self.assertEqual(self.PAYLOAD, record.source)

    """
        Nested and non-ASCII payloads survive the round trip unchanged.
    """
    def test_round_trip_preserves_payload(self):

        payload = {"clientId": "zoë", "answers": {"q1": [1, 2, {"n": None}]}, "sequence": ["q1"], "testPing": True}

        record = self.pipeline.process(_envelope(seal_payload(payload, self.public_pem)), self.rsa_manager).unwrap()

        self.assertEqual(payload, record.source)
        self.assertTrue(record.test_ping)

    """
        A 16-byte wrapped key fails the length gate; the symmetric cipher never runs.
    """
    def test_short_key_stops_before_aes(self):

        aes_manager = mock.Mock(spec=AESManager)
        pipeline = DecryptionPipeline(aes_manager=aes_manager)

        body = {
            "key": VALIDATION.encode_bytes_to_base64(RSAManager.wrap_key(b"\x07" * 16, self.public_pem)),
            "iv": VALIDATION.encode_bytes_to_base64(AESManager.generate_iv()),
            "ciphertext": VALIDATION.encode_bytes_to_base64(b"\x00" * 32),
        }

        result = pipeline.process(_envelope(body), self.rsa_manager)

        error = self.assertStageFailure(result, "rsa-unwrap", HTTPCodes.BAD_REQUEST)
        self.assertIsInstance(error.error, LengthError)
        self.assertEqual(32, error.error.expected)
        self.assertEqual(16, error.error.actual)
        aes_manager.decrypt.assert_not_called()

    """
        A wrong-length IV fails the aes-decrypt stage with a 400.
    """
    def test_bad_iv_length(self):

        body = seal_payload(self.PAYLOAD, self.public_pem)
        body["iv"] = VALIDATION.encode_bytes_to_base64(b"\x00" * 12)

        error = self.assertStageFailure(self.pipeline.process(_envelope(body), self.rsa_manager), "aes-decrypt", HTTPCodes.BAD_REQUEST)
        self.assertEqual(ApplicationCodes.INVALID_IV, error.application_code)

    """
        Ciphertext that is not a block multiple fails the aes-decrypt stage with a 400.
    """
    def test_bad_ciphertext_length(self):

        body = seal_payload(self.PAYLOAD, self.public_pem)
        body["ciphertext"] = VALIDATION.encode_bytes_to_base64(b"\x00" * 17)

        error = self.assertStageFailure(self.pipeline.process(_envelope(body), self.rsa_manager), "aes-decrypt", HTTPCodes.BAD_REQUEST)
        self.assertEqual(ApplicationCodes.INVALID_CIPHERTEXT, error.application_code)

    """
        Malformed base64 in any field fails the first stage before RSA is attempted.
    """
    def test_bad_base64(self):

        rsa_manager = mock.Mock(spec=RSAManager)

        for field in ("key", "iv", "ciphertext"):
            body = seal_payload(self.PAYLOAD, self.public_pem)
            body[field] = "not base64!"

            error = self.assertStageFailure(self.pipeline.process(_envelope(body), rsa_manager), "base64-decode", HTTPCodes.BAD_REQUEST)
            self.assertEqual(ApplicationCodes.INVALID_BASE64, error.application_code)
            self.assertEqual(field, error.field)

        rsa_manager.unwrap_key.assert_not_called()

    """
        A key wrapped for another keypair fails rsa-unwrap with a 500.
    """
    def test_wrong_keypair(self):

        body = seal_payload(self.PAYLOAD, self.other_public_pem)

        error = self.assertStageFailure(self.pipeline.process(_envelope(body), self.rsa_manager), "rsa-unwrap", HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(ApplicationCodes.RSA_DECRYPT_ERROR, error.application_code)

    """
        Flipping a bit anywhere in the ciphertext never yields a successful result.
    """
    def test_tampered_ciphertext_never_succeeds(self):

        body = seal_payload(self.PAYLOAD, self.public_pem)
        length = len(VALIDATION.decode_base64_field(body["ciphertext"], "ciphertext"))

        # First byte garbles the first block; the last bytes hit the padding
        for index in (0, 5, length - 17, length - 1):
            tampered = dict(body, ciphertext=_flip_bit(body["ciphertext"], index))

            result = self.pipeline.process(_envelope(tampered), self.rsa_manager)

            self.assertFalse(result.ok, f"bit flip at {index} was accepted")
            self.assertIn(result.error.stage, ("aes-decrypt", "utf8-decode", "json-parse"))

    """
        Plaintext that is not UTF-8 fails utf8-decode with a 500.
    """
    def test_non_utf8_plaintext(self):

        body = seal_payload(b"\xff\xfe\xfd", self.public_pem)

        error = self.assertStageFailure(self.pipeline.process(_envelope(body), self.rsa_manager), "utf8-decode", HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(ApplicationCodes.INVALID_UTF8, error.application_code)
        self.assertNotIn("hex:", error.detail)

        pipeline = DecryptionPipeline(debug_diagnostics=True)
        error = self.assertStageFailure(pipeline.process(_envelope(body), self.rsa_manager), "utf8-decode", HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertIn("fffefd", error.detail)

    """
        Malformed JSON fails json-parse with the parser's message.
    """
    def test_malformed_json(self):

        body = seal_payload(b'{"pointer": }', self.public_pem)

        error = self.assertStageFailure(self.pipeline.process(_envelope(body), self.rsa_manager), "json-parse", HTTPCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(ApplicationCodes.INVALID_PAYLOAD_JSON, error.application_code)
        self.assertTrue(error.error.parser_message)

    """
        Legacy envelopes are refused by the primary path and decrypted by the legacy path.
    """
    def test_legacy_path(self):

        body = seal_legacy_payload(self.PAYLOAD, self.public_pem)
        envelope = Envelope(ciphertext=body["ciphertext"])

        error = self.assertStageFailure(self.pipeline.process(envelope, self.rsa_manager), "envelope", HTTPCodes.BAD_REQUEST)
        self.assertIsInstance(error.error, InputError)

        record = self.pipeline.process_legacy(envelope, self.rsa_manager).unwrap()
        self.assertEqual(self.PAYLOAD, record.source)

    def test_rejects_non_envelope(self):

        result = self.pipeline.process({"key": "x"}, self.rsa_manager)  # type: ignore[arg-type]

        self.assertStageFailure(result, "envelope", HTTPCodes.BAD_REQUEST)
        self.assertIsInstance(result.error, SurveySealError)


if __name__ == "__main__":
    unittest.main()
