#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testSubmissionHandler.py

    Description:
        Tests for SubmissionHandler: status mapping of every failure class,
        error records written to the sink, key material resolved from the
        configuration store, and the public-key request.
"""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization

from surveyseal.database.submission_table import RecordSink
from surveyseal.encryption.AES_manager import AESManager
from surveyseal.encryption.RSA_manager import RSAManager
from surveyseal.handlers.error_handler import ApplicationCodes, HTTPCodes
from surveyseal.handlers.submission_handler import SubmissionHandler
from surveyseal.utilities.audit_log import AuditLog
from surveyseal.utilities.config_store import DictConfigStore
from surveyseal.utilities.envelope_client import seal_legacy_payload, seal_payload
import surveyseal.handlers.sanitization_validation as VALIDATION


"""
    Sink that keeps everything in memory.
"""
class MemorySink(RecordSink):

    def __init__(self) -> None:
        self.records = []
        self.error_records = []

    def append_record(self, record, received_at) -> None:
        self.records.append((record, received_at))

    def append_error_record(self, received_at, message) -> None:
        self.error_records.append((received_at, message))



class BrokenSink(RecordSink):

    def append_record(self, record, received_at) -> None:
        raise RuntimeError("disk full")

    def append_error_record(self, received_at, message) -> None:
        raise RuntimeError("disk full")



class TestSubmissionHandler(unittest.TestCase):

    RECEIVED_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    @classmethod
    def setUpClass(cls) -> None:

        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")
        cls.public_pem = RSAManager.from_pem(cls.private_pem).get_public_key_pem()

    def setUp(self) -> None:

        self.tmpdir = tempfile.mkdtemp()
        self.audit_log = AuditLog(os.path.join(self.tmpdir, "audit.log"))
        self.sink = MemorySink()

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)


    def _handler(self, sink: RecordSink = None, **settings) -> SubmissionHandler:

        values = {"PRIVATE_KEY_PEM": self.private_pem}
        values.update(settings)
        store = DictConfigStore({k: v for k, v in values.items() if v is not None})

        return SubmissionHandler(config_store=store, sink=sink if sink is not None else self.sink, audit_log=self.audit_log)


    def _audit_events(self) -> list:

        if not os.path.exists(self.audit_log.path):
            return []
        with open(self.audit_log.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


    """
        A valid envelope is stored and acknowledged.
    """
    def test_accepts_valid_submission(self):

        body = seal_payload({"clientId": "abc", "pointer": 3}, self.public_pem)

        packet, status = self._handler().handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.OK, status)
        self.assertEqual({"status": "ok"}, packet)
        self.assertEqual(1, len(self.sink.records))

        record, received_at = self.sink.records[0]
        self.assertEqual("abc", record.client_id)
        self.assertEqual(self.RECEIVED_AT, received_at)
        self.assertEqual([], self.sink.error_records)

    """
        Missing fields are a 400 and produce an error record carrying the message.
    """
    def test_missing_fields_is_400_with_error_record(self):

        packet, status = self._handler().handle_submission({"key": "QUJD"}, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.BAD_REQUEST, status)
        self.assertEqual(ApplicationCodes.MISSING_FIELDS, packet["code"])
        self.assertEqual([(self.RECEIVED_AT, packet["error"])], self.sink.error_records)
        self.assertEqual([], self.sink.records)

    """
        A 16-byte wrapped key is a 400 tagged with the rsa-unwrap stage.
    """
    def test_short_key_is_400(self):

        body = {
            "key": VALIDATION.encode_bytes_to_base64(RSAManager.wrap_key(b"\x01" * 16, self.public_pem)),
            "iv": VALIDATION.encode_bytes_to_base64(AESManager.generate_iv()),
            "ciphertext": VALIDATION.encode_bytes_to_base64(b"\x00" * 32),
        }

        packet, status = self._handler().handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.BAD_REQUEST, status)
        self.assertEqual("rsa-unwrap", packet["stage"])
        self.assertIn("expected 32", packet["error"])

    """
        Decrypted text that is not JSON is a 500 and the parser message is recorded.
    """
    def test_malformed_payload_json_is_500(self):

        body = seal_payload(b'{"pointer": }', self.public_pem)

        packet, status = self._handler().handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.INVALID_PAYLOAD_JSON, packet["code"])
        self.assertEqual("json-parse", packet["stage"])
        self.assertIn("not valid JSON", self.sink.error_records[0][1])

    """
        A missing private key is a 500 configuration error, not a client error.
    """
    def test_missing_private_key_is_500(self):

        body = seal_payload({"clientId": "abc"}, self.public_pem)

        packet, status = self._handler(PRIVATE_KEY_PEM=None).handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.MISSING_CONFIGURATION, packet["code"])
        self.assertEqual(1, len(self.sink.error_records))

    """
        A flag with an unrecognized value fails closed with a 500.
    """
    def test_invalid_flag_value_is_500(self):

        body = seal_payload({"clientId": "abc"}, self.public_pem)

        packet, status = self._handler(DEBUG_DIAGNOSTICS="maybe").handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.INVALID_CONFIGURATION, packet["code"])

    """
        Legacy ciphertext-only envelopes are accepted only when enabled.
    """
    def test_legacy_envelope_flag(self):

        body = seal_legacy_payload({"clientId": "old"}, self.public_pem)

        _packet, status = self._handler().handle_submission(body, self.RECEIVED_AT)
        self.assertEqual(HTTPCodes.BAD_REQUEST, status)

        packet, status = self._handler(ACCEPT_LEGACY_ENVELOPE="true").handle_submission(body, self.RECEIVED_AT)
        self.assertEqual(HTTPCodes.OK, status)
        self.assertEqual("old", self.sink.records[-1][0].client_id)

    """
        A failing sink never replaces the original error response.
    """
    def test_sink_failure_does_not_mask_error(self):

        packet, status = self._handler(sink=BrokenSink()).handle_submission({"iv": "QUJD"}, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.BAD_REQUEST, status)
        self.assertEqual(ApplicationCodes.MISSING_FIELDS, packet["code"])
        self.assertIn("error_record_write_failed", [e.get("event") for e in self._audit_events()])

    """
        A sink failure while storing a good record is a generic 500.
    """
    def test_sink_failure_on_record_is_500(self):

        body = seal_payload({"clientId": "abc"}, self.public_pem)

        packet, status = self._handler(sink=BrokenSink()).handle_submission(body, self.RECEIVED_AT)

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertNotIn("disk full", packet["error"])

    """
        Key material never reaches the audit log.
    """
    def test_private_key_not_logged(self):

        self._handler().handle_submission(seal_payload({"clientId": "abc"}, self.public_pem), self.RECEIVED_AT)
        self._handler().handle_submission({"key": "x"}, self.RECEIVED_AT)

        with open(self.audit_log.path, "r", encoding="utf-8") as f:
            contents = f.read()

        key_body = self.private_pem.splitlines()[1]
        self.assertNotIn(key_body, contents)

    """
        PUBLIC_KEY_PEM is served when set; otherwise the key is derived from PRIVATE_KEY_PEM.
    """
    def test_public_key_request(self):

        packet, status = self._handler(PUBLIC_KEY_PEM="-----BEGIN PUBLIC KEY-----\\nABC\\n-----END PUBLIC KEY-----").handle_public_key_request()
        self.assertEqual(HTTPCodes.OK, status)
        self.assertEqual("-----BEGIN PUBLIC KEY-----\nABC\n-----END PUBLIC KEY-----", packet["publicKey"])

        packet, status = self._handler().handle_public_key_request()
        self.assertEqual(HTTPCodes.OK, status)
        self.assertEqual(self.public_pem, packet["publicKey"])

        packet, status = self._handler(PRIVATE_KEY_PEM=None).handle_public_key_request()
        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.MISSING_CONFIGURATION, packet["code"])


if __name__ == "__main__":
    unittest.main()
