#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: error_handler.py

    Description:
        Centralized error handling for the SurveySeal intake service. Defines
        the typed error taxonomy raised by every stage of the decryption
        pipeline, converts exceptions into the canonical {"error": ...}
        response packet, and records diagnostic detail in the audit log.
        Client-attributable failures map to HTTP 400, key, configuration and
        cryptographic failures map to HTTP 500.
"""


from dataclasses import dataclass
import typing
from typing import Optional, Tuple
from surveyseal.utilities.audit_log import AuditLog



"""
    Container Class for HTTP status constants.
"""
@dataclass
class HTTPCodes:
    # 200 OK
    OK = 200

    # 400 Bad Request
    BAD_REQUEST = 400

    # 405 Method Not Allowed
    METHOD_NOT_ALLOWED = 405

    # 500 Internal Server Error
    INTERNAL_SERVER_ERROR = 500


"""
    Container Class for server error code strings.
"""
@dataclass
class ApplicationCodes:

    MALFORMED_JSON           = "malformed_json"
    MISSING_FIELDS           = "missing_fields"
    INVALID_TYPE             = "invalid_type"
    INVALID_LENGTH           = "invalid_length"
    INVALID_REQUEST          = "invalid_request"
    INVALID_PACKET_STRUCTURE = "invalid_packet_structure"
    INVALID_BASE64           = "invalid_base64"
    INVALID_AES_KEY          = "invalid_aes_key"
    INVALID_IV               = "invalid_iv"
    INVALID_CIPHERTEXT       = "invalid_ciphertext"
    RSA_DECRYPT_ERROR        = "rsa_decrypt_error"
    RSA_KEY_LOAD_ERROR       = "rsa_key_load_error"
    RSA_ENCRYPT_ERROR        = "rsa_encrypt_error"
    AES_DECRYPT_ERROR        = "aes_decrypt_error"
    AES_ENCRYPT_ERROR        = "aes_encrypt_error"
    EMPTY_PLAINTEXT          = "empty_plaintext"
    INVALID_UTF8             = "invalid_utf8"
    INVALID_PAYLOAD_JSON     = "invalid_payload_json"
    MISSING_CONFIGURATION    = "missing_configuration"
    INVALID_CONFIGURATION    = "invalid_configuration"
    INVALID_PATH             = "invalid_path"
    STORAGE_ERROR            = "storage_error"
    INTERNAL_SERVER_ERROR    = "internal_server_error"



class SurveySealError(Exception):

    """
        Initialize a SurveySealError containing application code, HTTP code, detail message, and field context.

        @param application_code (str): Identifier from ApplicationCodes signaling the failure type.
        @param http_code (int): HTTP status code associated with the error.
        @param detail (str): Descriptive message intended for client-facing error packets.
        @param field (str): Logical field related to the error (optional).
        @ensures Error metadata is accessible to the centralized ErrorHandler.
    """
    def __init__(self, application_code: str, http_code: int, detail: str, field: str = "") -> None:
        self.application_code = application_code
        self.http_code = http_code
        self.detail = detail
        self.field = field
        super().__init__(f"{application_code}: {detail}")



####################################################################################################
#                                   Pipeline error taxonomy
####################################################################################################

"""
    Missing or unparseable request body. Client-attributable.
"""
class InputError(SurveySealError):

    def __init__(self, detail: str, field: str = "body", application_code: str = ApplicationCodes.INVALID_REQUEST) -> None:
        super().__init__(application_code, HTTPCodes.BAD_REQUEST, detail, field)



"""
    Base64 text failed shape validation before any decode was attempted.
"""
class EncodingError(SurveySealError):

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__(ApplicationCodes.INVALID_BASE64, HTTPCodes.BAD_REQUEST, f"{label}: {reason}", label)



"""
    Key, IV or ciphertext has the wrong size.
"""
class LengthError(SurveySealError):

    def __init__(self, field: str, expected: typing.Union[int, str], actual: int, application_code: str = ApplicationCodes.INVALID_LENGTH) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(application_code, HTTPCodes.BAD_REQUEST, f"{field} length invalid: expected {expected} bytes, got {actual}", field)



"""
    An RSA or AES operation failed or produced implausible output.
"""
class CryptoError(SurveySealError):

    def __init__(self, stage: str, detail: str, application_code: str = ApplicationCodes.INTERNAL_SERVER_ERROR) -> None:
        self.stage = stage
        super().__init__(application_code, HTTPCodes.INTERNAL_SERVER_ERROR, detail, stage)



"""
    Decrypted bytes are not valid UTF-8.

    Previews are bounded renderings of the decrypted bytes and are left empty
    unless debug diagnostics are enabled.
"""
class DecodeError(SurveySealError):

    def __init__(self, byte_count: int, reason: str, hex_preview: str = "", latin1_preview: str = "") -> None:
        self.byte_count = byte_count
        self.reason = reason
        self.hex_preview = hex_preview
        self.latin1_preview = latin1_preview

        detail = f"Decrypted payload is not valid UTF-8 ({byte_count} bytes): {reason}"
        if hex_preview:
            detail += f" [hex: {hex_preview}] [latin1: {latin1_preview!r}]"

        super().__init__(ApplicationCodes.INVALID_UTF8, HTTPCodes.INTERNAL_SERVER_ERROR, detail, "plaintext")



"""
    Decrypted text is not a JSON object.
"""
class ParseError(SurveySealError):

    def __init__(self, parser_message: str) -> None:
        self.parser_message = parser_message
        super().__init__(ApplicationCodes.INVALID_PAYLOAD_JSON, HTTPCodes.INTERNAL_SERVER_ERROR, f"Decrypted payload is not valid JSON: {parser_message}", "plaintext")



"""
    Key material or another required setting is missing from the configuration store.
"""
class ConfigurationError(SurveySealError):

    def __init__(self, detail: str, field: str = "", application_code: str = ApplicationCodes.MISSING_CONFIGURATION) -> None:
        super().__init__(application_code, HTTPCodes.INTERNAL_SERVER_ERROR, detail, field)



"""
    Tags a stage error with the name of the pipeline stage it came from.
"""
class PipelineError(SurveySealError):

    def __init__(self, stage: str, error: SurveySealError) -> None:
        self.stage = stage
        self.error = error
        super().__init__(error.application_code, error.http_code, error.detail, error.field)



class ErrorHandler:

    """
        Initialize the ErrorHandler and attach an AuditLog for diagnostic event recording.

        @param audit_log (AuditLog|None): Shared audit log; a default one is created when omitted.
        @ensures ErrorHandler is ready to format and log errors.
    """
    def __init__(self, audit_log: Optional[AuditLog] = None) -> None:

        self.audit_log = audit_log if audit_log is not None else AuditLog()


    """
        Process an exception and return a standardized error packet.

        @param e (Exception): Exception raised during request handling.
        @param context (str): Logical context string identifying the failing operation.
        @return tuple[dict, int]: (clean_error_packet, http_status_code)
        @ensures Exception is logged to audit_log and a canonical failure packet is returned.
    """
    def handle_server_error(self, e: Exception, context: str = "") -> Tuple[dict, int]:

        stage = ""

        # Unwrap a stage-tagged error to its origin
        if isinstance(e, PipelineError):
            stage = e.stage

        if isinstance(e, SurveySealError):
            application_code = e.application_code
            http_code = e.http_code
            message = e.detail
        else:
            # For non-raised errors, normalize to INTERNAL_SERVER_ERROR
            application_code = ApplicationCodes.INTERNAL_SERVER_ERROR
            http_code = HTTPCodes.INTERNAL_SERVER_ERROR
            message = "An internal server error occurred. Please try again later."

        # Always log the raw exception detail for operators
        self.audit_log.event(event="server_exception", context=context, stage=stage, error_code=application_code, detail=str(e))

        clean_packet = self.create_error_response_packet(message, application_code, stage)

        return clean_packet, http_code


    """
        Build a standardized error response packet.

        @param message (str): Human-readable error message for the client.
        @param error_code (str): One of ApplicationCodes.* defining the error type.
        @param stage (str): Pipeline stage that failed (optional).
        @return dict: {"error": message, "code": error_code[, "stage": stage]}
    """
    def create_error_response_packet(self, message: str, error_code: str, stage: str = "") -> dict:

        packet = {
            "error": message,
            "code": error_code,
        }

        if stage:
            packet["stage"] = stage

        return packet
