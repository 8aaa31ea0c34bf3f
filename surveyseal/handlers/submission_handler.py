#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: submission_handler.py

    Description:
        Request-handling layer between the Flask routes and the decryption
        pipeline. Resolves key material and feature flags from the
        configuration store, validates the request envelope, runs the
        pipeline, hands accepted records to the storage sink, and turns every
        failure into a canonical error packet. Failures are also written to
        the sink as error records on a best-effort basis; a sink failure is
        audited and never replaces the original error response.
"""

import typing
from datetime import datetime, timezone

from surveyseal.database.submission_table import RecordSink
from surveyseal.encryption.RSA_manager import RSAManager
from surveyseal.handlers.decryption_pipeline import DecryptionPipeline
from surveyseal.handlers.error_handler import ConfigurationError, ErrorHandler, HTTPCodes
from surveyseal.handlers.packet_handler import PacketHandler
from surveyseal.utilities.audit_log import AuditLog
from surveyseal.utilities.config_store import ConfigStore, get_flag, require
import surveyseal.constants as CONSTANTS



class SubmissionHandler:

    """
        Initialize the handler with its collaborators.

        @param config_store (ConfigStore): Source of key material and flags, consulted on every request.
        @param sink (RecordSink): Append-only destination for records and error records.
        @param audit_log (AuditLog): Operational audit log.
        @param error_handler (ErrorHandler|None): Error formatter; built on audit_log when omitted.
        @param packet_handler (PacketHandler|None): Envelope parser and packet builder.
    """
    def __init__(self, config_store: ConfigStore, sink: RecordSink, audit_log: AuditLog, error_handler: typing.Optional[ErrorHandler] = None, packet_handler: typing.Optional[PacketHandler] = None) -> None:

        self._config_store = config_store
        self._sink = sink
        self._audit_log = audit_log
        self._error_handler = error_handler if error_handler is not None else ErrorHandler(audit_log)
        self._packet_handler = packet_handler if packet_handler is not None else PacketHandler()


    """
        Build an RSAManager from the configured private key.

        @return RSAManager: Manager bound to PRIVATE_KEY_PEM.
        @ensures Missing or unparseable key material raises ConfigurationError.
    """
    def _load_rsa_manager(self) -> RSAManager:

        private_key_pem = require(self._config_store, CONSTANTS.CONFIG_PRIVATE_KEY_PEM)
        allow_legacy = get_flag(self._config_store, CONSTANTS.CONFIG_ALLOW_LEGACY_PKCS1V15, False)

        return RSAManager.from_pem(private_key_pem, allow_legacy)


    """
        Decrypt one submission and store it.

        @param body (Any): Parsed JSON request body.
        @param received_at (datetime|None): Receive time; now (UTC) when omitted.
        @return tuple[dict, int]: ({"status": "ok"}, 200) or an error packet and its status.
    """
    def handle_submission(self, body: typing.Any, received_at: typing.Optional[datetime] = None) -> typing.Tuple[dict, int]:

        if received_at is None:
            received_at = datetime.now(timezone.utc)

        try:
            accept_legacy = get_flag(self._config_store, CONSTANTS.CONFIG_ACCEPT_LEGACY_ENVELOPE, False)
            envelope = self._packet_handler.parse_envelope(body, accept_legacy)

            rsa_manager = self._load_rsa_manager()

            pipeline = DecryptionPipeline(debug_diagnostics=get_flag(self._config_store, CONSTANTS.CONFIG_DEBUG_DIAGNOSTICS, False))

            if envelope.is_legacy:
                result = pipeline.process_legacy(envelope, rsa_manager)
            else:
                result = pipeline.process(envelope, rsa_manager)

            record = result.unwrap()

            self._sink.append_record(record, received_at)

            self._audit_log.event(event="submission_accepted", client_id=record.client_id, test_ping=record.test_ping, legacy=envelope.is_legacy)

            return self._packet_handler.create_ok_response_packet(), HTTPCodes.OK

        except Exception as e:
            return self.handle_failure(e, received_at)


    """
        Convert a failed submission into an error packet and record it.

        @param error (Exception): Failure raised while handling the submission.
        @param received_at (datetime): Time the request reached the server.
        @return tuple[dict, int]: Error packet and HTTP status.
    """
    def handle_failure(self, error: Exception, received_at: datetime) -> typing.Tuple[dict, int]:

        packet, status = self._error_handler.handle_server_error(error, context="submission")

        self._record_failure(received_at, packet.get("error", ""))

        return packet, status


    """
        Write an error record without letting a sink failure escape.

        @ensures The original error response is returned regardless of the sink's outcome.
    """
    def _record_failure(self, received_at: datetime, message: str) -> None:

        try:
            self._sink.append_error_record(received_at, message)

        except Exception as sink_error:
            self._audit_log.event(event="error_record_write_failed", context="submission", detail=str(sink_error))


    """
        Return the public half of the key pair.

        @return tuple[dict, int]: ({"publicKey": PEM}, 200) or an error packet and its status.
        @ensures PUBLIC_KEY_PEM is preferred; otherwise the public key is derived from PRIVATE_KEY_PEM.
    """
    def handle_public_key_request(self) -> typing.Tuple[dict, int]:

        try:
            public_key_pem = self._config_store.get(CONSTANTS.CONFIG_PUBLIC_KEY_PEM)

            if public_key_pem is None or not public_key_pem.strip():

                if self._config_store.get(CONSTANTS.CONFIG_PRIVATE_KEY_PEM) is None:
                    raise ConfigurationError("RSA public key is not configured", CONSTANTS.CONFIG_PUBLIC_KEY_PEM)

                public_key_pem = self._load_rsa_manager().get_public_key_pem()

            return self._packet_handler.create_public_key_response_packet(public_key_pem.replace("\\n", "\n")), HTTPCodes.OK

        except Exception as e:
            return self._error_handler.handle_server_error(e, context="public_key")
