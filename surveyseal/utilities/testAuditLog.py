#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testAuditLog.py

    Description:
        Tests for the JSON-lines audit log and the ErrorHandler events written to it.
"""

import json
import os
import shutil
import tempfile
import threading
import unittest
from surveyseal.handlers.error_handler import ApplicationCodes, CryptoError, ErrorHandler, HTTPCodes, LengthError, PipelineError
from surveyseal.utilities.audit_log import AuditLog


class TestAuditLog(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.audit_log = AuditLog(os.path.join(self.tmpdir, "audit.log"))

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _events(self) -> list:
        with open(self.audit_log.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f]


    """
        Each event is one JSON line with an ISO8601Z timestamp.
    """
    def test_event_is_json_line(self):

        self.audit_log.event(event="submission_accepted", client_id="abc")

        events = self._events()
        self.assertEqual(1, len(events))
        self.assertEqual("submission_accepted", events[0]["event"])
        self.assertEqual("abc", events[0]["client_id"])
        self.assertRegex(events[0]["timestamp"], r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

    """
        Sensitive keys are redacted and non-JSON values are stringified.
    """
    def test_redaction_and_default_str(self):

        self.audit_log.event(event="x", aes_key=b"\x00" * 32, plaintext="secret", when=object())

        event = self._events()[0]
        self.assertEqual("[redacted]", event["aes_key"])
        self.assertEqual("[redacted]", event["plaintext"])
        self.assertIsInstance(event["when"], str)

    """
        Concurrent writers never interleave lines.
    """
    def test_concurrent_events(self):

        threads = [threading.Thread(target=lambda i=i: self.audit_log.event(event="e", n=i)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(set(range(20)), {e["n"] for e in self._events()})

    """
        An unwritable path is reported on stderr instead of raising.
    """
    def test_write_failure_does_not_raise(self):

        AuditLog(os.path.join(self.tmpdir, "missing-dir", "audit.log")).event(event="lost")



class TestErrorHandler(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.audit_log = AuditLog(os.path.join(self.tmpdir, "audit.log"))
        self.handler = ErrorHandler(self.audit_log)

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    """
        Stage-tagged errors keep their status and expose the stage in the packet.
    """
    def test_pipeline_error_packet(self):

        error = PipelineError("rsa-unwrap", LengthError("aesKey", 32, 16, ApplicationCodes.INVALID_AES_KEY))

        packet, status = self.handler.handle_server_error(error, context="submission")

        self.assertEqual(HTTPCodes.BAD_REQUEST, status)
        self.assertEqual({"error": "aesKey length invalid: expected 32 bytes, got 16", "code": ApplicationCodes.INVALID_AES_KEY, "stage": "rsa-unwrap"}, packet)

    def test_typed_error_without_stage(self):

        packet, status = self.handler.handle_server_error(CryptoError("aes-decrypt", "padding", ApplicationCodes.AES_DECRYPT_ERROR))

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertNotIn("stage", packet)
        self.assertEqual("padding", packet["error"])

    """
        Unexpected exceptions are hidden behind a generic message but logged in full.
    """
    def test_unexpected_exception(self):

        packet, status = self.handler.handle_server_error(KeyError("internal detail"), context="global")

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, packet["code"])
        self.assertNotIn("internal detail", packet["error"])

        with open(self.audit_log.path, "r", encoding="utf-8") as f:
            event = json.loads(f.readline())

        self.assertEqual("server_exception", event["event"])
        self.assertIn("internal detail", event["detail"])


if __name__ == "__main__":
    unittest.main()
