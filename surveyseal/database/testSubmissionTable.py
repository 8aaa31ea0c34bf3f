#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testSubmissionTable.py

    Description:
        Unit tests for the storage layer. Database credential loading and
        statement execution are exercised against an in-memory connection
        factory, so no PostgreSQL server is needed. SubmissionTable and
        AuditLogSink are checked for row order and error-record shape.
"""


import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone
from surveyseal.database.database_object import Database
from surveyseal.database.submission_table import AuditLogSink, SubmissionTable
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError, SurveySealError
from surveyseal.handlers.survey_record import SurveyRecord
from surveyseal.utilities.audit_log import AuditLog
import surveyseal.constants as CONSTANTS


"""
    Stand-in for a psycopg2 connection that records every executed statement.
"""
class FakeConnection:

    def __init__(self, log: list, fail: bool = False) -> None:
        self.log = log
        self.fail = fail
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True



class FakeCursor:

    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self.rowcount = 0

    def execute(self, sql, params):
        if self.conn.fail:
            raise RuntimeError("relation does not exist")
        self.conn.log.append((" ".join(sql.split()), params))
        self.rowcount = 1

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False



####################################################################################################
#                                         Database Tests
####################################################################################################

class TestDatabaseCore(unittest.TestCase):

    def setUp(self) -> None:

        self.tmpdir = tempfile.mkdtemp()
        self.credentials_path = self._write_credentials({"database": "surveys", "user": "intake", "password": "pw", "host": "db"})

        self.statements = []
        self.connections = []

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)


    def _write_credentials(self, creds, name: str = "creds.json") -> str:

        path = os.path.join(self.tmpdir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(creds if isinstance(creds, str) else json.dumps(creds))
        return path


    def _connect(self, fail: bool = False):

        def connect(**kwargs):
            self.connect_kwargs = kwargs
            conn = FakeConnection(self.statements, fail)
            self.connections.append(conn)
            return conn

        return connect


    """
        Verify that credentials load and are passed through to the connection factory.
    """
    def test_load_credentials_and_connect(self):

        db = Database(self.credentials_path, connect=self._connect())

        self.assertEqual(1, db.execute_statement("SELECT 1;"))
        self.assertEqual({"dbname": "surveys", "user": "intake", "password": "pw", "host": "db"}, self.connect_kwargs)
        self.assertTrue(self.connections[0].committed)
        self.assertTrue(self.connections[0].closed)


    """
        Verify that host defaults to localhost when omitted.
    """
    def test_host_defaults_to_localhost(self):

        path = self._write_credentials({"database": "surveys", "user": "intake", "password": "pw"}, "nohost.json")

        db = Database(path, connect=self._connect())
        db.execute_statement("SELECT 1;")

        self.assertEqual("localhost", self.connect_kwargs["host"])


    """
        Verify that _load_database_credentials rejects a non-string or empty credentials path.
    """
    def test_load_credentials_invalid_path(self):

        for bad in (123, "   "):
            db = Database.__new__(Database)
            db._credentials_path = bad  # type: ignore[attr-defined]

            with self.assertRaises(ConfigurationError) as cm:
                db._load_database_credentials()

            self.assertEqual(ApplicationCodes.INVALID_PATH, cm.exception.application_code)


    """
        Verify that a missing file, invalid JSON, a non-object, missing fields and nested values are all rejected.
    """
    def test_load_credentials_bad_files(self):

        paths = [
            os.path.join(self.tmpdir, "missing.json"),
            self._write_credentials("{not json", "bad.json"),
            self._write_credentials([1, 2], "list.json"),
            self._write_credentials({"database": "surveys", "user": "intake"}, "partial.json"),
            self._write_credentials({"database": "surveys", "user": {"name": "intake"}, "password": "pw"}, "nested.json"),
        ]

        for path in paths:
            with self.assertRaises(ConfigurationError):
                Database(path, connect=self._connect())


    """
        Verify that execute_statement validates its arguments before connecting.
    """
    def test_execute_statement_validation_errors(self):

        db = Database(self.credentials_path, connect=self._connect())

        with self.assertRaises(SurveySealError):
            db.execute_statement("")

        with self.assertRaises(SurveySealError):
            db.execute_statement("SELECT 1;", ["not", "a", "tuple"])  # type: ignore[arg-type]

        self.assertEqual([], self.connections)


    """
        Verify that a failing statement is rolled back and reported as a storage error.
    """
    def test_execute_statement_failure_rolls_back(self):

        db = Database(self.credentials_path, connect=self._connect(fail=True))

        with self.assertRaises(SurveySealError) as cm:
            db.execute_statement("INSERT INTO x VALUES (%s);", (1,))

        self.assertEqual(ApplicationCodes.STORAGE_ERROR, cm.exception.application_code)
        self.assertTrue(self.connections[0].rolled_back)
        self.assertTrue(self.connections[0].closed)


    """
        Verify that a connection factory failure surfaces as a storage error.
    """
    def test_connection_failure(self):

        def refuse(**_kwargs):
            raise OSError("connection refused")

        db = Database(self.credentials_path, connect=refuse)

        with self.assertRaises(SurveySealError) as cm:
            db.execute_statement("SELECT 1;")

        self.assertEqual(ApplicationCodes.STORAGE_ERROR, cm.exception.application_code)



####################################################################################################
#                                      SubmissionTable Tests
####################################################################################################

class TestSubmissionTable(unittest.TestCase):

    RECEIVED_AT = datetime(2026, 5, 6, 7, 8, 9, tzinfo=timezone.utc)

    def setUp(self) -> None:

        self.tmpdir = tempfile.mkdtemp()
        path = os.path.join(self.tmpdir, "creds.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"database": "surveys", "user": "intake", "password": "pw"}, f)

        self.statements = []
        self.db = Database(path, connect=lambda **_kw: FakeConnection(self.statements))

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)


    def test_requires_database_instance(self):

        with self.assertRaises(SurveySealError):
            SubmissionTable(object())  # type: ignore[arg-type]


    """
        Construction creates both tables.
    """
    def test_creates_tables(self):

        SubmissionTable(self.db)

        self.assertEqual(2, len(self.statements))
        self.assertIn("CREATE TABLE IF NOT EXISTS survey_submissions", self.statements[0][0])
        self.assertIn("CREATE TABLE IF NOT EXISTS survey_submission_errors", self.statements[1][0])


    """
        Records are inserted with columns and values in the fixed order.
    """
    def test_append_record(self):

        table = SubmissionTable(self.db)
        record = SurveyRecord.from_dict({"clientId": "abc", "pointer": 3, "answers": {"q1": 2}})

        table.append_record(record, self.RECEIVED_AT)

        sql, params = self.statements[-1]
        self.assertIn("INSERT INTO survey_submissions (" + ", ".join(CONSTANTS._SUBMISSION_COLUMNS) + ")", sql)
        self.assertEqual(record.to_row(self.RECEIVED_AT), params)
        self.assertEqual("abc", params[1])
        self.assertEqual('{"q1":2}', params[4])


    def test_append_record_rejects_non_record(self):

        table = SubmissionTable(self.db)

        with self.assertRaises(SurveySealError):
            table.append_record({"clientId": "abc"}, self.RECEIVED_AT)  # type: ignore[arg-type]


    """
        Error records carry only the receive time and the message.
    """
    def test_append_error_record(self):

        table = SubmissionTable(self.db)

        table.append_error_record(self.RECEIVED_AT, "ciphertext: must not be empty")

        sql, params = self.statements[-1]
        self.assertIn("INSERT INTO survey_submission_errors", sql)
        self.assertEqual((self.RECEIVED_AT, "ciphertext: must not be empty"), params)



class TestAuditLogSink(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()
        self.audit_log = AuditLog(os.path.join(self.tmpdir, "audit.log"))

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_records_and_errors_are_logged(self):

        sink = AuditLogSink(self.audit_log)
        received_at = datetime(2026, 1, 1, tzinfo=timezone.utc)

        sink.append_record(SurveyRecord.from_dict({"clientId": "abc", "testPing": True}), received_at)
        sink.append_error_record(received_at, "boom")

        with open(self.audit_log.path, "r", encoding="utf-8") as f:
            events = [json.loads(line) for line in f]

        self.assertEqual("submission_record", events[0]["event"])
        self.assertEqual("abc", events[0]["client_id"])
        self.assertEqual("TEST", events[0]["test_ping"])
        self.assertEqual("submission_error_record", events[1]["event"])
        self.assertEqual("boom", events[1]["message"])


if __name__ == "__main__":
    unittest.main()
