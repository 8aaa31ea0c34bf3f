#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: envelope_client.py

    Description:
        Builds envelopes exactly as the browser client does: a fresh AES-256
        key and IV, AES-CBC/PKCS7 over the UTF-8 JSON payload, and the raw
        32-byte key wrapped with RSA-OAEP (SHA-256) under the server's public
        key. Used for smoke-testing deployments and by the test suites.
"""

import json
import typing
from surveyseal.encryption.AES_manager import AESManager
from surveyseal.encryption.RSA_manager import RSAManager
import surveyseal.handlers.sanitization_validation as VALIDATION
import surveyseal.constants as CONSTANTS


"""
    Seal a JSON payload into a {key, iv, ciphertext} envelope.

    @param payload (dict|bytes): JSON object, or raw plaintext bytes to encrypt as-is.
    @param public_key_pem (str): Server public key PEM.
    @param aes_key (bytes|None): Fixed AES key; random when omitted.
    @param iv (bytes|None): Fixed IV; random when omitted.
    @return dict: Request body ready to POST.
"""
def seal_payload(payload: typing.Union[dict, bytes], public_key_pem: str, aes_key: typing.Optional[bytes] = None, iv: typing.Optional[bytes] = None) -> dict:

    plaintext = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")

    aes_key = aes_key if aes_key is not None else AESManager.generate_key()
    iv = iv if iv is not None else AESManager.generate_iv()

    ciphertext = AESManager().encrypt(plaintext, aes_key, iv)
    wrapped_key = RSAManager.wrap_key(aes_key, public_key_pem)

    return {
        CONSTANTS._FIELD_WRAPPED_KEY: VALIDATION.encode_bytes_to_base64(wrapped_key),
        CONSTANTS._FIELD_IV: VALIDATION.encode_bytes_to_base64(iv),
        CONSTANTS._FIELD_CIPHERTEXT: VALIDATION.encode_bytes_to_base64(ciphertext),
    }



"""
    Seal a small JSON payload into a legacy {ciphertext} envelope (RSA-OAEP only).

    @return dict: Request body ready to POST.
"""
def seal_legacy_payload(payload: dict, public_key_pem: str) -> dict:

    plaintext = json.dumps(payload).encode("utf-8")
    ciphertext = RSAManager.wrap_key(plaintext, public_key_pem)

    return {CONSTANTS._FIELD_CIPHERTEXT: VALIDATION.encode_bytes_to_base64(ciphertext)}
