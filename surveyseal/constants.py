#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: constants.py

    Description:
        Centralized wire-format constants for the SurveySeal envelope. Defines
        the accepted request fields, cryptographic sizes, the base64 alphabet,
        configuration names, pipeline stage names, and the fixed column order
        of the storage sink, shared by the validators, the pipeline and the
        request handlers.
"""

import re
from typing import Set, Tuple


################################################################################################
# Cryptographic sizes
################################################################################################

# AES-256 key length in bytes
_AES_KEY_LEN_BYTES = 32

# AES-CBC initialization vector length in bytes
_AES_IV_LEN_BYTES = 16

# AES block size in bytes (ciphertext must be a multiple of this)
_AES_BLOCK_LEN_BYTES = 16

# Upper bound on each diagnostic preview of decrypted bytes
_DIAGNOSTIC_PREVIEW_BYTES = 64

# Request body size cap (bytes)
_MAX_CONTENT_LENGTH = 262_144


################################################################################################
# Base64 text
################################################################################################

# Standard base64 alphabet including padding
_BASE64_RX = re.compile(r"^[A-Za-z0-9+/=]+$")

# Any whitespace, stripped before validation
_WHITESPACE_RX = re.compile(r"\s+")


################################################################################################
# Envelope fields
################################################################################################

_FIELD_WRAPPED_KEY = "key"
_FIELD_WRAPPED_KEY_ALIAS = "wrappedKey"
_FIELD_IV = "iv"
_FIELD_CIPHERTEXT = "ciphertext"

# Fields required for the primary (RSA + AES) envelope
_ENVELOPE_REQUIRED_FIELDS: Set[str] = {_FIELD_WRAPPED_KEY, _FIELD_IV, _FIELD_CIPHERTEXT}


################################################################################################
# Pipeline stage names
################################################################################################

_STAGE_ENVELOPE = "envelope"
_STAGE_BASE64 = "base64-decode"
_STAGE_RSA_UNWRAP = "rsa-unwrap"
_STAGE_AES_DECRYPT = "aes-decrypt"
_STAGE_UTF8_DECODE = "utf8-decode"
_STAGE_JSON_PARSE = "json-parse"


################################################################################################
# Configuration names
################################################################################################

CONFIG_PRIVATE_KEY_PEM = "PRIVATE_KEY_PEM"
CONFIG_PUBLIC_KEY_PEM = "PUBLIC_KEY_PEM"
CONFIG_DEBUG_DIAGNOSTICS = "DEBUG_DIAGNOSTICS"
CONFIG_ALLOW_LEGACY_PKCS1V15 = "ALLOW_LEGACY_PKCS1V15"
CONFIG_ACCEPT_LEGACY_ENVELOPE = "ACCEPT_LEGACY_ENVELOPE"
CONFIG_DATABASE_CREDENTIALS_PATH = "DATABASE_CREDENTIALS_PATH"
CONFIG_AUDIT_LOG_PATH = "AUDIT_LOG_PATH"
CONFIG_FILE_PATH = "SURVEYSEAL_CONFIG_PATH"

_TRUE_STRINGS: Set[str] = {"1", "true", "yes", "on"}
_FALSE_STRINGS: Set[str] = {"0", "false", "no", "off", ""}


################################################################################################
# Storage sink
################################################################################################

# Column order of a submission row
_SUBMISSION_COLUMNS: Tuple[str, ...] = (
    "received_at",
    "client_id",
    "client_timestamp",
    "meta",
    "answers",
    "sequence",
    "pointer",
    "smart_score",
    "confidence_score",
    "test_ping",
)

# Marker written in the test_ping column for test submissions
_TEST_PING_MARKER = "TEST"

RESPONSE_STATUS_OK = "ok"
