#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testPacketHandler.py

    Description:
        Tests for envelope validation and response packet construction.
"""

import unittest
from surveyseal.handlers.packet_handler import Envelope, PacketHandler
from surveyseal.handlers.error_handler import ApplicationCodes, HTTPCodes, InputError


class TestPacketHandler(unittest.TestCase):

    def setUp(self) -> None:
        self.handler = PacketHandler()

    """
        A complete envelope is returned with its fields untouched.
    """
    def test_parse_primary_envelope(self):

        envelope = self.handler.parse_envelope({"key": "a2V5", "iv": "aXY=", "ciphertext": "Y3Q=", "extra": 1})

        self.assertEqual(Envelope(ciphertext="Y3Q=", wrapped_key="a2V5", iv="aXY="), envelope)
        self.assertFalse(envelope.is_legacy)

    """
        wrappedKey is accepted in place of key.
    """
    def test_parse_wrapped_key_alias(self):

        envelope = self.handler.parse_envelope({"wrappedKey": "a2V5", "iv": "aXY=", "ciphertext": "Y3Q="})

        self.assertEqual("a2V5", envelope.wrapped_key)

    """
        Bodies that are not JSON objects are rejected with a 400.
    """
    def test_rejects_non_object_body(self):

        for body in (None, [], "text", 5):
            with self.assertRaises(InputError) as cm:
                self.handler.parse_envelope(body)

            self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_PACKET_STRUCTURE)
            self.assertEqual(cm.exception.http_code, HTTPCodes.BAD_REQUEST)

    """
        Missing and blank fields are named in the error.
    """
    def test_rejects_missing_or_blank_fields(self):

        with self.assertRaises(InputError) as cm:
            self.handler.parse_envelope({"key": "a2V5", "ciphertext": "Y3Q="})

        self.assertEqual(cm.exception.application_code, ApplicationCodes.MISSING_FIELDS)
        self.assertIn("iv", cm.exception.detail)

        with self.assertRaises(InputError) as cm:
            self.handler.parse_envelope({"key": "a2V5", "iv": "  ", "ciphertext": ""})

        self.assertIn("ciphertext", cm.exception.detail)
        self.assertIn("iv", cm.exception.detail)

    """
        A ciphertext-only body is refused unless the legacy shape is enabled.
    """
    def test_legacy_shape_is_opt_in(self):

        with self.assertRaises(InputError) as cm:
            self.handler.parse_envelope({"ciphertext": "Y3Q="})

        self.assertIn("key", cm.exception.detail)
        self.assertNotIn("ciphertext", cm.exception.detail)

        # Explicit nulls count as missing
        with self.assertRaises(InputError) as cm:
            self.handler.parse_envelope({"key": None, "iv": None, "ciphertext": "QUJD"})

        self.assertEqual(ApplicationCodes.MISSING_FIELDS, cm.exception.application_code)
        self.assertIn("iv, key", cm.exception.detail)
        self.assertFalse(cm.exception.detail.rstrip().endswith(":"))

        envelope =self.handler.parse_envelope({"ciphertext": "Y3Q="}, accept_legacy=True)

        self.assertTrue(envelope.is_legacy)
        self.assertEqual("Y3Q=", envelope.ciphertext)

        with self.assertRaises(InputError):
            self.handler.parse_envelope({}, accept_legacy=True)

    def test_response_packets(self):

        self.assertEqual({"status": "ok"}, self.handler.create_ok_response_packet())
        self.assertEqual({"publicKey": "PEM"}, self.handler.create_public_key_response_packet("PEM"))


if __name__ == "__main__":
    unittest.main()
