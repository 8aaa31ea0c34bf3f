#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: server.py

    Description:
        Entry point for the SurveySeal backend. Configures the Flask
        application, the configuration store, audit logging, error handling,
        the storage sink and the submission handler. Exposes the intake
        route: GET returns the RSA public key, POST accepts an encrypted
        envelope. Normalizes every exception through the centralized
        ErrorHandler so all failures share the {"error": ...} packet shape.
"""


import typing
from datetime import datetime, timezone
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from surveyseal.utilities.audit_log import AuditLog
from surveyseal.utilities.config_store import ConfigStore, default_config_store
from surveyseal.database.database_object import Database
from surveyseal.database.submission_table import AuditLogSink, RecordSink, SubmissionTable
from surveyseal.handlers.error_handler import ApplicationCodes, ErrorHandler, HTTPCodes, InputError
from surveyseal.handlers.submission_handler import SubmissionHandler
import surveyseal.constants as CONSTANTS


#####################################################################################################################################################################

"""
    Build the storage sink: PostgreSQL when DATABASE_CREDENTIALS_PATH is configured, the audit log otherwise.

    @param config_store (ConfigStore): Store to read the credentials path from.
    @param audit_log (AuditLog): Fallback destination.
    @return RecordSink: Sink used by the submission handler.
"""
def create_sink(config_store: ConfigStore, audit_log: AuditLog) -> RecordSink:

    credentials_path = config_store.get(CONSTANTS.CONFIG_DATABASE_CREDENTIALS_PATH)

    if credentials_path is None:
        return AuditLogSink(audit_log)

    return SubmissionTable(Database(credentials_path=credentials_path))



"""
    Create and configure the SurveySeal Flask application.

    @param config_store (ConfigStore|None): Settings source; environment plus optional JSON file by default.
    @param sink (RecordSink|None): Storage sink; built from configuration when omitted.
    @param audit_log (AuditLog|None): Audit log; AUDIT_LOG_PATH or the module default when omitted.
    @return Flask: Fully configured Flask application instance.
"""
def create_app(config_store: typing.Optional[ConfigStore] = None, sink: typing.Optional[RecordSink] = None, audit_log: typing.Optional[AuditLog] = None) -> Flask:

    app = Flask(__name__)

    # Enforce a payload limit well above any legitimate envelope
    app.config["MAX_CONTENT_LENGTH"] = CONSTANTS._MAX_CONTENT_LENGTH

    ################################################################################################
    # Initialize Handlers
    ################################################################################################

    app.config_store = config_store if config_store is not None else default_config_store()

    app.audit_log = audit_log if audit_log is not None else AuditLog(app.config_store.get(CONSTANTS.CONFIG_AUDIT_LOG_PATH))

    # Centralized error handler
    app.error_handler = ErrorHandler(app.audit_log)

    app.sink = sink if sink is not None else create_sink(app.config_store, app.audit_log)

    app.submission_handler = SubmissionHandler(config_store=app.config_store, sink=app.sink, audit_log=app.audit_log, error_handler=app.error_handler)


    ################################################################################################
    # ROUTES
    ################################################################################################

    """
        Return the RSA public key clients wrap their AES key with.

        @return flask.Response: {"publicKey": PEM} or an error packet.
    """
    @app.get("/api/submit")
    def public_key():

        resp_obj, http_status = app.submission_handler.handle_public_key_request()

        return jsonify(resp_obj), http_status



    """
        Accept an encrypted envelope.

        @require Request body is a JSON object
        @return flask.Response: {"status": "ok"} or an error packet.
        @ensures Body parsing failures are reported as 400 and recorded like any other failure.
    """
    @app.post("/api/submit")
    def submit():

        received_at = datetime.now(timezone.utc)

        # Parse JSON body strictly; silent=True yields None on malformed input
        body = request.get_json(force=True, silent=True)

        if body is None:
            e = InputError("Failed to parse JSON request body", "body", ApplicationCodes.MALFORMED_JSON)
            clean_packet, status = app.submission_handler.handle_failure(e, received_at)
            return jsonify(clean_packet), status

        resp_obj, http_status = app.submission_handler.handle_submission(body, received_at)

        return jsonify(resp_obj), http_status


    ################################################################################################
    # GLOBAL ERROR HANDLERS
    ################################################################################################

    """
        413 Payload Too Large exception into a standard error packet, recorded like any other failed submission.
    """
    @app.errorhandler(413)
    def handle_payload_too_large(_e):

        e = InputError("Payload exceeds maximum size limit", "body", ApplicationCodes.INVALID_LENGTH)

        clean_packet, status = app.submission_handler.handle_failure(e, datetime.now(timezone.utc))

        return jsonify(clean_packet), status


    """
        405 for any method other than GET and POST on the intake route.
    """
    @app.errorhandler(405)
    def handle_method_not_allowed(_e):

        e = InputError(f"Invalid HTTP method: {request.method}", "http_method", ApplicationCodes.INVALID_REQUEST)

        clean_packet, _status = app.error_handler.handle_server_error(e, context="method_not_allowed")

        return jsonify(clean_packet), HTTPCodes.METHOD_NOT_ALLOWED


    """
        Catch-all handler for any unexpected exception raised during request processing.
    """
    @app.errorhandler(Exception)
    def handle_internal_error(e: Exception):

        # Routing errors such as 404 keep their own status
        if isinstance(e, HTTPException):
            clean_packet = app.error_handler.create_error_response_packet(e.description or e.name, ApplicationCodes.INVALID_REQUEST)
            return jsonify(clean_packet), e.code

        clean_packet, status = app.error_handler.handle_server_error(e, context="global_error_handler")

        return jsonify(clean_packet), status

    return app
