#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testServer.py

    Description:
        HTTP-level tests for the SurveySeal Flask application using Flask's
        test client. Verifies the public-key GET, the submission POST, status
        mapping for client and server failures, and the global error handlers.
"""

import json
import os
import shutil
import tempfile
import unittest
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization

from surveyseal.server import create_app, create_sink
from surveyseal.database.submission_table import AuditLogSink, RecordSink
from surveyseal.encryption.RSA_manager import RSAManager
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError
from surveyseal.utilities.audit_log import AuditLog
from surveyseal.utilities.config_store import DictConfigStore
from surveyseal.utilities.envelope_client import seal_payload
import surveyseal.constants as CONSTANTS


class MemorySink(RecordSink):

    def __init__(self) -> None:
        self.records = []
        self.error_records = []

    def append_record(self, record, received_at) -> None:
        self.records.append(record)

    def append_error_record(self, received_at, message) -> None:
        self.error_records.append(message)



class TestServer(unittest.TestCase):

    URL = "/api/submit"

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
        self.client = self._client({"PRIVATE_KEY_PEM": self.private_pem})

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _client(self, settings: dict):

        app = create_app(config_store=DictConfigStore(settings), sink=self.sink, audit_log=self.audit_log)
        app.testing = True
        return app.test_client()


    """
        GET returns the public key derived from the configured private key.
    """
    def test_get_public_key(self):

        resp = self.client.get(self.URL)

        self.assertEqual(200, resp.status_code)
        self.assertEqual({"publicKey": self.public_pem}, resp.get_json())

    """
        A valid envelope is acknowledged with {"status": "ok"}.
    """
    def test_post_valid_envelope(self):

        resp = self.client.post(self.URL, json=seal_payload({"clientId": "abc", "pointer": 3}, self.public_pem))

        self.assertEqual(200, resp.status_code)
        self.assertEqual({"status": "ok"}, resp.get_json())
        self.assertEqual("abc", self.sink.records[0].client_id)

    """
        The body is parsed as JSON regardless of Content-Type.
    """
    def test_post_without_json_content_type(self):

        body = json.dumps(seal_payload({"clientId": "plain"}, self.public_pem))

        resp = self.client.post(self.URL, data=body, content_type="text/plain")

        self.assertEqual(200, resp.status_code)

    """
        An unparseable body is a 400 and is recorded like any other failure.
    """
    def test_post_malformed_body(self):

        resp = self.client.post(self.URL, data="{not json", content_type="application/json")

        self.assertEqual(400, resp.status_code)
        self.assertEqual(ApplicationCodes.MALFORMED_JSON, resp.get_json()["code"])
        self.assertEqual([resp.get_json()["error"]], self.sink.error_records)

    """
        Client-attributable envelope problems are 400 with an {"error": ...} body.
    """
    def test_post_client_errors(self):

        envelope = seal_payload({"clientId": "abc"}, self.public_pem)

        for body in ({}, dict(envelope, iv="***"), dict(envelope, iv="AAAA")):
            resp = self.client.post(self.URL, json=body)

            self.assertEqual(400, resp.status_code, body)
            self.assertIn("error", resp.get_json())

    """
        Missing key material is a 500 on both routes.
    """
    def test_missing_key_material(self):

        client = self._client({})

        resp = client.get(self.URL)
        self.assertEqual(500, resp.status_code)
        self.assertEqual(ApplicationCodes.MISSING_CONFIGURATION, resp.get_json()["code"])

        resp = client.post(self.URL, json=seal_payload({"clientId": "abc"}, self.public_pem))
        self.assertEqual(500, resp.status_code)

    """
        Oversized bodies are refused before parsing and recorded as error records.
    """
    def test_payload_too_large(self):

        resp = self.client.post(self.URL, data="x" * (CONSTANTS._MAX_CONTENT_LENGTH + 1), content_type="application/json")

        self.assertEqual(400, resp.status_code)
        self.assertEqual(ApplicationCodes.INVALID_LENGTH, resp.get_json()["code"])
        self.assertEqual([resp.get_json()["error"]], self.sink.error_records)

    def test_method_not_allowed(self):

        resp = self.client.put(self.URL, json={})

        self.assertEqual(405, resp.status_code)
        self.assertIn("PUT", resp.get_json()["error"])

    def test_unknown_route_keeps_status(self):

        resp = self.client.get("/nope")

        self.assertEqual(404, resp.status_code)
        self.assertIn("error", resp.get_json())



class TestCreateSink(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.audit_log = AuditLog(os.path.join(self.tmpdir, "audit.log"))

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_audit_log_sink_without_database(self):

        self.assertIsInstance(create_sink(DictConfigStore({}), self.audit_log), AuditLogSink)

    def test_bad_credentials_path(self):

        store = DictConfigStore({"DATABASE_CREDENTIALS_PATH": os.path.join(self.tmpdir, "absent.json")})

        with self.assertRaises(ConfigurationError):
            create_sink(store, self.audit_log)


if __name__ == "__main__":
    unittest.main()
