#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: decryption_pipeline.py

    Description:
        Sequences the SurveySeal decryption stages:

            base64 -> RSA-OAEP unwrap -> AES-256-CBC/PKCS7 -> UTF-8 -> JSON

        Each stage either returns a fully validated value or fails with a
        typed error. The orchestrator runs the stages as a chain of
        result-propagating calls: the first failure is captured as a
        PipelineError tagged with its stage name and every later stage is
        skipped, so no buffer from a failed stage ever reaches the next one.
        The pipeline does no I/O and keeps no state between calls.
"""

import typing
from dataclasses import dataclass, replace

from surveyseal.encryption.AES_manager import AESManager
from surveyseal.encryption.RSA_manager import RSAManager
from surveyseal.handlers.error_handler import ApplicationCodes, HTTPCodes, InputError, PipelineError, SurveySealError
from surveyseal.handlers.packet_handler import Envelope
from surveyseal.handlers.survey_record import SurveyRecord
import surveyseal.handlers.sanitization_validation as VALIDATION
import surveyseal.constants as CONSTANTS


"""
    Outcome of one pipeline run: exactly one of value or error is set.
"""
@dataclass(frozen=True)
class PipelineResult:

    value: typing.Any = None
    error: typing.Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: typing.Any) -> "PipelineResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineError) -> "PipelineResult":
        return cls(error=error)


    """
        Run the next stage on this result's value, or pass a failure through untouched.

        @param stage (str): Stage name attached to any error raised by fn.
        @param fn (callable): Stage function taking the current value.
        @return PipelineResult: Result of the stage, or this failure.
    """
    def and_then(self, stage: str, fn: typing.Callable[[typing.Any], typing.Any]) -> "PipelineResult":

        if not self.ok:
            return self

        try:
            return PipelineResult.success(fn(self.value))

        except SurveySealError as e:
            return PipelineResult.failure(PipelineError(stage, e))

        except Exception:
            unexpected = SurveySealError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, f"Unexpected failure during {stage}", stage)
            return PipelineResult.failure(PipelineError(stage, unexpected))


    def unwrap(self) -> typing.Any:
        """Return the value or raise the captured PipelineError."""

        if self.error is not None:
            raise self.error
        return self.value



# Binary envelope fields after base64 decoding
@dataclass(frozen=True)
class _CipherParts:
    key: bytes
    iv: bytes
    ciphertext: bytes



class DecryptionPipeline:

    """
        Initialize the pipeline.

        @param aes_manager (AESManager|None): Symmetric stage; a default one is created when omitted.
        @param debug_diagnostics (bool): Attach bounded byte previews to UTF-8 decode failures.
    """
    def __init__(self, aes_manager: typing.Optional[AESManager] = None, debug_diagnostics: bool = False) -> None:

        self._aes_manager = aes_manager if aes_manager is not None else AESManager()
        self._debug_diagnostics = bool(debug_diagnostics)


    ################################################################################################
    #                                          Stages
    ################################################################################################

    @staticmethod
    def _decode_envelope(envelope: Envelope) -> _CipherParts:

        # All three fields are validated before anything is decoded
        clean_key = VALIDATION.validate_base64_text(envelope.wrapped_key, CONSTANTS._FIELD_WRAPPED_KEY)
        clean_iv = VALIDATION.validate_base64_text(envelope.iv, CONSTANTS._FIELD_IV)
        clean_ciphertext = VALIDATION.validate_base64_text(envelope.ciphertext, CONSTANTS._FIELD_CIPHERTEXT)

        return _CipherParts(
            key=VALIDATION.decode_base64_text(clean_key, CONSTANTS._FIELD_WRAPPED_KEY),
            iv=VALIDATION.decode_base64_text(clean_iv, CONSTANTS._FIELD_IV),
            ciphertext=VALIDATION.decode_base64_text(clean_ciphertext, CONSTANTS._FIELD_CIPHERTEXT),
        )


    def _decode_text(self, plaintext: bytes) -> str:
        return VALIDATION.decode_plaintext_bytes(plaintext, self._debug_diagnostics)


    @staticmethod
    def _build_record(obj: dict) -> SurveyRecord:
        return SurveyRecord.from_dict(obj)


    ################################################################################################
    #                                        Entry points
    ################################################################################################

    """
        Decrypt a primary {key, iv, ciphertext} envelope.

        @param envelope (Envelope): Envelope with all three fields present.
        @param rsa_manager (RSAManager): Holder of the resolved private key.
        @return PipelineResult: SurveyRecord on success, stage-tagged PipelineError otherwise.
        @ensures Stages run left to right and stop at the first failure.
    """
    def process(self, envelope: Envelope, rsa_manager: RSAManager) -> PipelineResult:

        if not isinstance(envelope, Envelope) or envelope.is_legacy:
            return PipelineResult.success(envelope).and_then(CONSTANTS._STAGE_ENVELOPE, self._reject_envelope)

        return (
            PipelineResult.success(envelope)
            .and_then(CONSTANTS._STAGE_BASE64, self._decode_envelope)
            .and_then(CONSTANTS._STAGE_RSA_UNWRAP, lambda parts: replace(parts, key=rsa_manager.unwrap_key(parts.key)))
            .and_then(CONSTANTS._STAGE_AES_DECRYPT, lambda parts: self._aes_manager.decrypt(parts.ciphertext, parts.key, parts.iv))
            .and_then(CONSTANTS._STAGE_UTF8_DECODE, self._decode_text)
            .and_then(CONSTANTS._STAGE_JSON_PARSE, VALIDATION.parse_plaintext_json)
            .and_then(CONSTANTS._STAGE_JSON_PARSE, self._build_record)
        )


    """
        Decrypt a legacy {ciphertext} envelope whose RSA layer carries the JSON payload.

        @param envelope (Envelope): Envelope with only ciphertext set.
        @param rsa_manager (RSAManager): Holder of the resolved private key.
        @return PipelineResult: SurveyRecord on success, stage-tagged PipelineError otherwise.
    """
    def process_legacy(self, envelope: Envelope, rsa_manager: RSAManager) -> PipelineResult:

        if not isinstance(envelope, Envelope):
            return PipelineResult.success(envelope).and_then(CONSTANTS._STAGE_ENVELOPE, self._reject_envelope)

        return (
            PipelineResult.success(envelope.ciphertext)
            .and_then(CONSTANTS._STAGE_BASE64, lambda text: VALIDATION.decode_base64_field(text, CONSTANTS._FIELD_CIPHERTEXT))
            .and_then(CONSTANTS._STAGE_RSA_UNWRAP, rsa_manager.decrypt_payload)
            .and_then(CONSTANTS._STAGE_UTF8_DECODE, self._decode_text)
            .and_then(CONSTANTS._STAGE_JSON_PARSE, VALIDATION.parse_plaintext_json)
            .and_then(CONSTANTS._STAGE_JSON_PARSE, self._build_record)
        )


    @staticmethod
    def _reject_envelope(envelope: typing.Any) -> typing.NoReturn:
        raise InputError("Envelope must carry key, iv and ciphertext", "body", ApplicationCodes.MISSING_FIELDS)
