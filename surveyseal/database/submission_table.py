#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: submission_table.py

    Description:
        Append-only storage sink for decrypted survey submissions. Writes one
        row per accepted record in a fixed column order, and one row per
        failed submission carrying only the receive time and error message so
        that operational failures stay visible.
"""

from datetime import datetime
from surveyseal.database.database_object import Database
from surveyseal.handlers.error_handler import ApplicationCodes, HTTPCodes, SurveySealError
from surveyseal.handlers.survey_record import SurveyRecord
from surveyseal.utilities.audit_log import AuditLog
import surveyseal.constants as CONSTANTS



"""
    Interface of the append-only sink the submission handler writes to.
"""
class RecordSink:

    def append_record(self, record: SurveyRecord, received_at: datetime) -> None:
        raise NotImplementedError

    def append_error_record(self, received_at: datetime, message: str) -> None:
        raise NotImplementedError



class SubmissionTable(RecordSink):

    """
        Initialize a SubmissionTable helper bound to a Database instance.

        @param db (Database): Shared Database helper used for PostgreSQL access.
        @ensures survey_submissions and survey_submission_errors exist.
    """
    def __init__(self, db: Database) -> None:

        if not isinstance(db, Database):
            raise SurveySealError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SubmissionTable requires a Database instance", "db")

        self._db: Database = db

        self._ensure_tables_exist()


    def _ensure_tables_exist(self) -> None:

        create_submissions_sql = """
            CREATE TABLE IF NOT EXISTS survey_submissions (
                id               BIGSERIAL PRIMARY KEY,
                received_at      TIMESTAMPTZ NOT NULL,
                client_id        TEXT        NOT NULL,
                client_timestamp TEXT        NOT NULL,
                meta             TEXT        NOT NULL,
                answers          TEXT        NOT NULL,
                sequence         TEXT        NOT NULL,
                pointer          DOUBLE PRECISION,
                smart_score      DOUBLE PRECISION,
                confidence_score DOUBLE PRECISION,
                test_ping        TEXT        NOT NULL
            );
        """

        create_errors_sql = """
            CREATE TABLE IF NOT EXISTS survey_submission_errors (
                id          BIGSERIAL PRIMARY KEY,
                received_at TIMESTAMPTZ NOT NULL,
                message     TEXT        NOT NULL
            );
        """

        self._db.execute_statement(create_submissions_sql)
        self._db.execute_statement(create_errors_sql)


    """
        Append one decrypted record.

        @param record (SurveyRecord): Record recovered by the decryption pipeline.
        @param received_at (datetime): Time the request reached the server.
        @ensures Exactly one row is inserted, columns in constants._SUBMISSION_COLUMNS order.
    """
    def append_record(self, record: SurveyRecord, received_at: datetime) -> None:

        if not isinstance(record, SurveyRecord):
            raise SurveySealError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "append_record expects a SurveyRecord", "record")

        columns = ", ".join(CONSTANTS._SUBMISSION_COLUMNS)
        placeholders = ", ".join(["%s"] * len(CONSTANTS._SUBMISSION_COLUMNS))

        insert_sql = f"INSERT INTO survey_submissions ({columns}) VALUES ({placeholders});"

        self._db.execute_statement(insert_sql, record.to_row(received_at))


    """
        Append an error row for a failed submission.

        @param received_at (datetime): Time the request reached the server.
        @param message (str): Error message returned to the client.
    """
    def append_error_record(self, received_at: datetime, message: str) -> None:

        insert_sql = """
            INSERT INTO survey_submission_errors (received_at, message)
            VALUES (%s, %s);
        """

        self._db.execute_statement(insert_sql, (received_at, str(message)))



"""
    Sink used when no database is configured: records go to the audit log only.
"""
class AuditLogSink(RecordSink):

    def __init__(self, audit_log: AuditLog) -> None:
        self._audit_log = audit_log

    def append_record(self, record: SurveyRecord, received_at: datetime) -> None:
        row = dict(zip(CONSTANTS._SUBMISSION_COLUMNS, record.to_row(received_at)))
        self._audit_log.event(event="submission_record", **row)

    def append_error_record(self, received_at: datetime, message: str) -> None:
        self._audit_log.event(event="submission_error_record", received_at=received_at, message=message)
