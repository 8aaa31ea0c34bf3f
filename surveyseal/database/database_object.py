#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: database_object.py

    Description:
        PostgreSQL access for the SurveySeal storage sink. Credentials are
        read from a flat JSON file through the same validated loader as the
        configuration file, and every statement runs in its own committed
        transaction. Driver failures are raised upward as SurveySealError so
        storage problems never surface as raw psycopg2 exceptions.
"""


import typing
import psycopg2
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError, HTTPCodes, SurveySealError
from surveyseal.utilities.config_store import JsonFileConfigStore, require


_DEFAULT_HOST = "localhost"


class Database:

    """
        Bind a Database helper to one credential file.

        @param credentials_path (str): JSON file holding database, user, password and optional host.
        @param connect (callable|None): Connection factory, psycopg2.connect by default.
        @ensures Credentials are loaded once; a bad file raises ConfigurationError here, not at first write.
    """
    def __init__(self, credentials_path: str, connect: typing.Optional[typing.Callable[..., typing.Any]] = None) -> None:

        self._credentials_path = credentials_path
        self._connect = connect if connect is not None else psycopg2.connect
        self._credentials: typing.Dict[str, str] = {}

        self._load_database_credentials()


    def _load_database_credentials(self) -> None:

        try:
            store = JsonFileConfigStore(self._credentials_path)

            self._credentials = {
                "dbname": require(store, "database").strip(),
                "user": require(store, "user").strip(),
                "password": require(store, "password"),
                "host": (store.get("host") or _DEFAULT_HOST).strip(),
            }

        except SurveySealError:
            raise
        except Exception:
            raise ConfigurationError("Unexpected error loading database credentials", "database_credentials", ApplicationCodes.INVALID_CONFIGURATION)


    def _get_database_connection(self):

        try:
            conn = self._connect(**self._credentials)

        except Exception:
            raise SurveySealError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Error connecting to PostgreSQL database", "database_connection")

        if conn is None:
            raise SurveySealError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Failed to create PostgreSQL connection", "database_connection")

        return conn


    """
        Execute one parameterized statement (CREATE, INSERT, ...) in its own transaction.

        @param sql (str): Statement with %s placeholders.
        @param params (tuple|None): Values bound to the placeholders.
        @return int: Rows affected.
        @ensures Commits on success; rolls back and raises STORAGE_ERROR on failure; always closes the connection.
    """
    def execute_statement(self, sql: str, params: typing.Optional[typing.Tuple[typing.Any, ...]] = None) -> int:

        if not isinstance(sql, str) or not sql.strip():
            raise SurveySealError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SQL must be a non-empty string", "sql")

        params = () if params is None else params

        if not isinstance(params, tuple):
            raise SurveySealError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "params must be a tuple", "params")

        conn = self._get_database_connection()

        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                affected = cur.rowcount

            conn.commit()
            return affected

        except Exception:
            conn.rollback()
            raise SurveySealError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Database execution error", "sql_execute")

        finally:
            conn.close()
