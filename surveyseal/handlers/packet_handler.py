#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: packet_handler.py

    Description:
        Request-envelope validation and response-packet construction for the
        SurveySeal intake endpoint. Turns an untrusted JSON request body into
        an Envelope (primary {key, iv, ciphertext} shape or the legacy
        {ciphertext} shape) and builds the success and public-key packets.
        Only presence and emptiness are checked here; base64 shape is the
        codec's job.
"""

import typing
from dataclasses import dataclass
from surveyseal.handlers.error_handler import ApplicationCodes, InputError
import surveyseal.constants as CONSTANTS


"""
    Untrusted envelope fields, still base64 text.
"""
@dataclass(frozen=True)
class Envelope:

    ciphertext: typing.Any
    wrapped_key: typing.Any = None
    iv: typing.Any = None

    @property
    def is_legacy(self) -> bool:
        return self.wrapped_key is None and self.iv is None



def _is_blank(value: typing.Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())



class PacketHandler:

    """
        Validate a parsed request body and build an Envelope.

        @param body (Any): Parsed JSON request body.
        @param accept_legacy (bool): Accept the {ciphertext}-only legacy shape.
        @return Envelope: Envelope with every required field present and non-empty.
        @ensures Raises InputError for a non-object body, missing fields or empty fields.
    """
    def parse_envelope(self, body: typing.Any, accept_legacy: bool = False) -> Envelope:

        if not isinstance(body, dict):
            raise InputError("Invalid JSON structure (expected object)", "body", ApplicationCodes.INVALID_PACKET_STRUCTURE)

        wrapped_key = body.get(CONSTANTS._FIELD_WRAPPED_KEY)
        if wrapped_key is None:
            wrapped_key = body.get(CONSTANTS._FIELD_WRAPPED_KEY_ALIAS)

        iv = body.get(CONSTANTS._FIELD_IV)
        ciphertext = body.get(CONSTANTS._FIELD_CIPHERTEXT)

        # Legacy shape: ciphertext only, RSA layer carries the whole payload
        if wrapped_key is None and iv is None:

            if not accept_legacy:
                missing = {name for name in CONSTANTS._ENVELOPE_REQUIRED_FIELDS if _is_blank(body.get(name))}
                raise InputError(f"Missing required fields: {', '.join(sorted(missing))}", "body", ApplicationCodes.MISSING_FIELDS)

            if _is_blank(ciphertext):
                raise InputError("Missing required fields: ciphertext", CONSTANTS._FIELD_CIPHERTEXT, ApplicationCodes.MISSING_FIELDS)

            return Envelope(ciphertext=ciphertext)

        fields = {
            CONSTANTS._FIELD_WRAPPED_KEY: wrapped_key,
            CONSTANTS._FIELD_IV: iv,
            CONSTANTS._FIELD_CIPHERTEXT: ciphertext,
        }

        missing = sorted(name for name, value in fields.items() if _is_blank(value))
        if missing:
            raise InputError(f"Missing required fields: {', '.join(missing)}", "body", ApplicationCodes.MISSING_FIELDS)

        return Envelope(ciphertext=ciphertext, wrapped_key=wrapped_key, iv=iv)


    def create_ok_response_packet(self) -> dict:
        return {"status": CONSTANTS.RESPONSE_STATUS_OK}


    def create_public_key_response_packet(self, public_key_pem: str) -> dict:
        return {"publicKey": public_key_pem}
