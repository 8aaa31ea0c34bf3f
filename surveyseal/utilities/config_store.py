#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: config_store.py

    Description:
        Configuration lookup for SurveySeal. Every setting, including the RSA
        key material, is read through the single get(name) operation so that
        request handlers and tests can inject their own store. Provides an
        environment-backed store, a JSON-file store validated the same way as
        the database credential file, an in-memory store, and a chained store
        that consults several sources in order.
"""

import json
import os
import typing
from surveyseal.handlers.error_handler import ApplicationCodes, ConfigurationError
import surveyseal.constants as CONSTANTS



"""
    Read-only name -> string lookup.
"""
class ConfigStore:

    def get(self, name: str) -> typing.Optional[str]:
        raise NotImplementedError



"""
    Reads settings from the process environment.
"""
class EnvironmentConfigStore(ConfigStore):

    def __init__(self, environ: typing.Optional[typing.Mapping[str, str]] = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get(self, name: str) -> typing.Optional[str]:
        value = self._environ.get(name)
        if value is None or not value.strip():
            return None
        return value



"""
    In-memory store, mostly for tests and embedding.
"""
class DictConfigStore(ConfigStore):

    def __init__(self, values: typing.Optional[typing.Dict[str, typing.Any]] = None) -> None:
        self._values = dict(values or {})

    def get(self, name: str) -> typing.Optional[str]:
        value = self._values.get(name)
        if value is None:
            return None
        return str(value)



class JsonFileConfigStore(ConfigStore):

    """
        Load a flat JSON object of settings from disk.

        @param path (str): Path to a JSON file holding a single object.
        @require path references a readable file containing a JSON object
        @ensures All values are kept as strings; non-scalar values are rejected.
    """
    def __init__(self, path: str) -> None:

        try:
            if not isinstance(path, str) or not path.strip():
                raise ConfigurationError("Configuration path must be a non-empty string", "config_path", ApplicationCodes.INVALID_PATH)

            if not os.path.isfile(path):
                raise ConfigurationError("Configuration file not found", "config_path", ApplicationCodes.INVALID_PATH)

            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()

            try:
                values = json.loads(raw)
            except Exception:
                raise ConfigurationError("Configuration file must contain valid JSON", "config_path", ApplicationCodes.INVALID_CONFIGURATION)

            if not isinstance(values, dict):
                raise ConfigurationError("Configuration JSON must be an object", "config_path", ApplicationCodes.INVALID_CONFIGURATION)

            self._values: typing.Dict[str, str] = {}
            for name, value in values.items():

                # Nested structures have no meaning for a flat lookup
                if isinstance(value, (dict, list)):
                    raise ConfigurationError(f"Configuration value for {name} must be a scalar", name, ApplicationCodes.INVALID_CONFIGURATION)

                if value is None:
                    continue

                if isinstance(value, bool):
                    value = "true" if value else "false"

                self._values[name] = str(value)

        except ConfigurationError:
            raise
        except Exception:
            raise ConfigurationError("Unexpected error loading configuration file", "config_path", ApplicationCodes.INVALID_CONFIGURATION)


    def get(self, name: str) -> typing.Optional[str]:
        return self._values.get(name)



"""
    Consults each store in order and returns the first value found.
"""
class ChainedConfigStore(ConfigStore):

    def __init__(self, *stores: ConfigStore) -> None:
        self._stores = stores

    def get(self, name: str) -> typing.Optional[str]:
        for store in self._stores:
            value = store.get(name)
            if value is not None:
                return value
        return None



"""
    Build the default store: environment first, then the optional JSON file named by SURVEYSEAL_CONFIG_PATH.

    @return ConfigStore: Store used by the Flask application factory.
"""
def default_config_store() -> ConfigStore:

    environment = EnvironmentConfigStore()
    config_path = environment.get(CONSTANTS.CONFIG_FILE_PATH)

    if config_path is None:
        return environment

    return ChainedConfigStore(environment, JsonFileConfigStore(config_path))



"""
    Interpret a setting as a boolean flag.

    @param store (ConfigStore): Store to read from.
    @param name (str): Setting name.
    @param default (bool): Value used when the setting is absent.
    @return bool: Parsed flag.
    @ensures Unrecognized values raise ConfigurationError instead of silently defaulting.
"""
def get_flag(store: ConfigStore, name: str, default: bool = False) -> bool:

    value = store.get(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in CONSTANTS._TRUE_STRINGS:
        return True
    if normalized in CONSTANTS._FALSE_STRINGS:
        return False

    raise ConfigurationError(f"{name} must be a boolean flag", name, ApplicationCodes.INVALID_CONFIGURATION)



"""
    Fetch a setting that must be present.

    @return str: The configured value.
    @ensures Raises ConfigurationError when the setting is absent.
"""
def require(store: ConfigStore, name: str) -> str:

    value = store.get(name)
    if value is None or not value.strip():
        raise ConfigurationError(f"Missing required configuration: {name}", name)

    return value
