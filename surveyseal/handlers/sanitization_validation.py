#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: sanitization_validation.py

    Description:
        Provides the encoding, decoding and parsing utilities for SurveySeal's
        decryption pipeline: strict base64 validation ahead of any decode,
        UTF-8 decoding of decrypted bytes with bounded diagnostic previews,
        and JSON parsing of the recovered payload.

        Every helper either returns a fully validated value or raises a typed
        SurveySealError; nothing partially decoded is ever returned.
"""

import base64
import binascii
import json
import typing

from surveyseal.handlers.error_handler import (
    ApplicationCodes,
    CryptoError,
    DecodeError,
    EncodingError,
    HTTPCodes,
    InputError,
    ParseError,
    SurveySealError,
)
import surveyseal.constants as CONSTANTS


####################################################################################################
#                                   Base64 Validation / Decoding
####################################################################################################

"""
    Strip whitespace from base64 text and verify its alphabet and length.

    @param text (Any): Candidate base64 text.
    @param label (str): Logical field name used in error messages.
    @return str: Whitespace-free base64 text.
    @ensures Raises EncodingError when text is not a string, is empty, contains
             characters outside [A-Za-z0-9+/=], or is not a multiple of 4 long.
"""
def validate_base64_text(text: typing.Any, label: str) -> str:

    if not isinstance(text, str):
        raise EncodingError(label, "must be a base64 string")

    clean = CONSTANTS._WHITESPACE_RX.sub("", text)

    if not clean:
        raise EncodingError(label, "must not be empty")

    if not CONSTANTS._BASE64_RX.fullmatch(clean):
        raise EncodingError(label, "contains characters outside the base64 alphabet")

    if len(clean) % 4 != 0:
        raise EncodingError(label, f"length {len(clean)} is not a multiple of 4")

    return clean



"""
    Decode base64 text that already passed validate_base64_text.

    @param clean_text (str): Output of validate_base64_text.
    @param label (str): Logical field name used in error messages.
    @return bytes: Decoded bytes.
    @ensures Misplaced padding or any other decoder rejection raises EncodingError.
    @ensures Text that does not re-encode to itself, such as nonzero trailing bits, raises EncodingError.
"""
def decode_base64_text(clean_text: str, label: str) -> bytes:

    try:
        raw = base64.b64decode(clean_text, validate=True)

    except (binascii.Error, ValueError) as e:
        raise EncodingError(label, f"malformed base64 ({e})")

    if base64.b64encode(raw).decode("ascii") != clean_text:
        raise EncodingError(label, "non-canonical base64")

    return raw



"""
    Validate then decode a base64 field in one step.

    @return bytes: Decoded bytes.
"""
def decode_base64_field(text: typing.Any, label: str) -> bytes:

    return decode_base64_text(validate_base64_text(text, label), label)



"""
    Encode raw bytes as standard padded base64 text.

    @param raw (bytes): Bytes to encode.
    @return str: ASCII base64 string.
"""
def encode_bytes_to_base64(raw: bytes) -> str:

    if not isinstance(raw, (bytes, bytearray)):
        raise InputError("base64 encode expects bytes", "raw", ApplicationCodes.INVALID_TYPE)

    return base64.b64encode(bytes(raw)).decode("ascii")



####################################################################################################
#                                   Plaintext Decoding / Parsing
####################################################################################################

"""
    Render bounded hexadecimal and Latin-1 previews of decrypted bytes.

    @param raw_bytes (bytes): Decrypted bytes.
    @return tuple[str, str]: (hex_preview, latin1_preview), each covering at most 64 bytes.
"""
def build_diagnostic_previews(raw_bytes: bytes) -> typing.Tuple[str, str]:

    head = bytes(raw_bytes[:CONSTANTS._DIAGNOSTIC_PREVIEW_BYTES])

    return head.hex(), head.decode("latin-1")



"""
    Decode decrypted bytes as UTF-8 text.

    @param raw_bytes (bytes): Output of the symmetric decrypt stage.
    @param debug_diagnostics (bool): Attach bounded byte previews to DecodeError.
    @return str: Decoded, non-empty text.
    @ensures Invalid UTF-8 raises DecodeError; an empty result raises CryptoError.
"""
def decode_plaintext_bytes(raw_bytes: bytes, debug_diagnostics: bool = False) -> str:

    if not isinstance(raw_bytes, (bytes, bytearray)):
        raise CryptoError(CONSTANTS._STAGE_UTF8_DECODE, "Decrypted payload must be bytes", ApplicationCodes.INVALID_TYPE)

    try:
        text = bytes(raw_bytes).decode("utf-8")

    except UnicodeDecodeError as e:
        hex_preview, latin1_preview = ("", "")
        if debug_diagnostics:
            hex_preview, latin1_preview = build_diagnostic_previews(raw_bytes)

        raise DecodeError(len(raw_bytes), e.reason, hex_preview, latin1_preview)

    # An empty payload almost always means the wrong key or IV
    if len(text) == 0:
        raise CryptoError(CONSTANTS._STAGE_UTF8_DECODE, "Decrypted payload is empty", ApplicationCodes.EMPTY_PLAINTEXT)

    return text



"""
    Parse decrypted text as a JSON object.

    @param text (str): Output of decode_plaintext_bytes.
    @return dict: Parsed JSON object.
    @ensures Raises ParseError carrying the parser message on any failure; no repair is attempted.
"""
def parse_plaintext_json(text: str) -> dict:

    try:
        obj = json.loads(text)

    except (TypeError, ValueError) as e:
        raise ParseError(str(e))

    if not isinstance(obj, dict):
        raise ParseError(f"expected a JSON object, got {type(obj).__name__}")

    return obj



"""
    Serialize a value as compact JSON text for storage.

    @param value (Any): JSON-serializable value.
    @return str: Compact JSON text.
"""
def encode_json_text(value: typing.Any) -> str:

    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)

    except (TypeError, ValueError):
        raise SurveySealError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to serialize JSON value", "value")
