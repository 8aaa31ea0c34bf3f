#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testConfigStore.py

    Description:
        Tests for the configuration stores and the flag/required-value helpers.
"""

import json
import os
import shutil
import tempfile
import unittest
from unittest import mock
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError, HTTPCodes
from surveyseal.utilities.config_store import (
    ChainedConfigStore,
    DictConfigStore,
    EnvironmentConfigStore,
    JsonFileConfigStore,
    default_config_store,
    get_flag,
    require,
)


class TestConfigStores(unittest.TestCase):

    def setUp(self) -> None:
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _write(self, content, name: str = "config.json") -> str:
        path = os.path.join(self.tmpdir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content if isinstance(content, str) else json.dumps(content))
        return path


    """
        Blank environment values count as absent.
    """
    def test_environment_store(self):

        store = EnvironmentConfigStore({"A": "1", "B": "  "})

        self.assertEqual("1", store.get("A"))
        self.assertIsNone(store.get("B"))
        self.assertIsNone(store.get("C"))

    def test_dict_store_stringifies(self):

        store = DictConfigStore({"N": 5, "S": "x", "NONE": None})

        self.assertEqual("5", store.get("N"))
        self.assertEqual("x", store.get("S"))
        self.assertIsNone(store.get("NONE"))

    """
        A JSON file keeps scalars as strings, maps booleans to true/false and skips nulls.
    """
    def test_json_file_store(self):

        store = JsonFileConfigStore(self._write({"PRIVATE_KEY_PEM": "pem", "DEBUG_DIAGNOSTICS": True, "PORT": 8080, "EMPTY": None}))

        self.assertEqual("pem", store.get("PRIVATE_KEY_PEM"))
        self.assertEqual("true", store.get("DEBUG_DIAGNOSTICS"))
        self.assertEqual("8080", store.get("PORT"))
        self.assertIsNone(store.get("EMPTY"))

    """
        Missing files, bad JSON, non-objects and nested values raise ConfigurationError (500).
    """
    def test_json_file_store_rejects_bad_files(self):

        cases = [
            (os.path.join(self.tmpdir, "absent.json"), ApplicationCodes.INVALID_PATH),
            ("", ApplicationCodes.INVALID_PATH),
            (self._write("{oops", "bad.json"), ApplicationCodes.INVALID_CONFIGURATION),
            (self._write([1], "list.json"), ApplicationCodes.INVALID_CONFIGURATION),
            (self._write({"A": {"nested": 1}}, "nested.json"), ApplicationCodes.INVALID_CONFIGURATION),
        ]

        for path, code in cases:
            with self.assertRaises(ConfigurationError) as cm:
                JsonFileConfigStore(path)

            self.assertEqual(code, cm.exception.application_code)
            self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, cm.exception.http_code)

    def test_chained_store_order(self):

        store = ChainedConfigStore(DictConfigStore({"A": "first"}), DictConfigStore({"A": "second", "B": "b"}))

        self.assertEqual("first", store.get("A"))
        self.assertEqual("b", store.get("B"))
        self.assertIsNone(store.get("C"))

    """
        The default store adds the JSON file named by SURVEYSEAL_CONFIG_PATH behind the environment.
    """
    def test_default_config_store(self):

        path = self._write({"PRIVATE_KEY_PEM": "from-file", "PUBLIC_KEY_PEM": "pub"})

        with mock.patch.dict(os.environ, {"SURVEYSEAL_CONFIG_PATH": path, "PRIVATE_KEY_PEM": "from-env"}):
            store = default_config_store()

            self.assertEqual("from-env", store.get("PRIVATE_KEY_PEM"))
            self.assertEqual("pub", store.get("PUBLIC_KEY_PEM"))

        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsInstance(default_config_store(), EnvironmentConfigStore)



class TestConfigHelpers(unittest.TestCase):

    def test_get_flag(self):

        store = DictConfigStore({"ON": "Yes", "OFF": "0", "ODD": "maybe"})

        self.assertTrue(get_flag(store, "ON"))
        self.assertFalse(get_flag(store, "OFF", True))
        self.assertTrue(get_flag(store, "ABSENT", True))
        self.assertFalse(get_flag(store, "ABSENT"))

        with self.assertRaises(ConfigurationError) as cm:
            get_flag(store, "ODD")

        self.assertEqual(ApplicationCodes.INVALID_CONFIGURATION, cm.exception.application_code)
        self.assertEqual("ODD", cm.exception.field)

    def test_require(self):

        store = DictConfigStore({"A": "value", "BLANK": " "})

        self.assertEqual("value", require(store, "A"))

        for name in ("BLANK", "ABSENT"):
            with self.assertRaises(ConfigurationError) as cm:
                require(store, name)

            self.assertEqual(ApplicationCodes.MISSING_CONFIGURATION, cm.exception.application_code)
            self.assertIn(name, cm.exception.detail)


if __name__ == "__main__":
    unittest.main()
