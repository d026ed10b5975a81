#!/usr/bin/env python3
"""
File: config_parser.py
Author: Bastian Cerf
Date: 12/08/2025
Description:
    Read and validate a configuration file in the .ini format against a
    JSON schema. A default .ini file is generated from the schema when
    none exists yet.

    The schema declares one block per .ini section and one inner-block
    per key. The inner-block describes the value:
    - type: int, float, str, bool or time ("HH:MM", returned normalized)
    - required: the value cannot be left empty (the key itself can never
        be missing)
    - default: value written in the generated default file
    - comment: help line written before the key in the generated file
    - min/max: range of int and float values
    - choices: list of accepted values
    Only the type is mandatory.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import configparser
import datetime as dt
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, NamedTuple, Optional, TextIO

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """
    General configuration file error. It's the only error raised by this
    module.
    """

    def __init__(self, msg: str):
        super().__init__(msg)


def _str_to_bool(s: str) -> bool:
    """
    Raises:
        ValueError: string doesn't contain a valid boolean.
    """
    s = s.strip().lower()
    if s in {"true", "1", "yes", "on"}:
        return True
    elif s in {"false", "0", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean string: {s}")


def _str_to_time(s: str) -> str:
    """
    Validate a 24-hour "H:MM" or "HH:MM" time and return it as "HH:MM".

    Raises:
        ValueError: not a valid time of day.
    """
    return dt.datetime.strptime(s.strip(), "%H:%M").strftime("%H:%M")


def _value_to_str(value: Any) -> str:
    """
    Raises:
        ValueError: no string literal for this type.
    """
    # bool first, it's an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    raise ValueError(f"Unknown type '{type(value).__name__}'")


class ConversionResult(NamedTuple):
    """
    Result of `_SchemaEntry.check_and_convert()`. `message` is only set on
    error and `value` only on success.
    """

    error: bool
    message: Optional[str]
    value: Optional[Any]


class _SchemaEntry:
    """
    Rules of a single key, as declared in the schema.
    """

    _CONV_MAP: dict[str, Callable[[str], Any]] = {
        "int": int,
        "float": float,
        "str": str,
        "bool": _str_to_bool,
        "time": _str_to_time,
    }

    # Optional fields: accepted value types (None for any) and default
    _OPTIONAL_FIELDS: dict[str, tuple[Optional[tuple[type, ...]], Any]] = {
        "required": ((bool,), False),
        "default": (None, None),
        "comment": ((str,), None),
        "min": ((int, float), None),
        "max": ((int, float), None),
        "choices": ((list,), None),
    }

    def __init__(self, key: str, entry: dict[str, Any]):
        self._key = key

        vartype = entry.get("type")
        if vartype is None:
            raise ConfigError(f"'type' field missing for key '{key}'.")
        if vartype not in self._CONV_MAP:
            raise ConfigError(f"Type '{vartype}' unrecognized for key '{key}'.")
        self._vartype: str = vartype

        unknown = set(entry) - set(self._OPTIONAL_FIELDS) - {"type"}
        if unknown:
            raise ConfigError(
                f"Unrecognized field(s): '{', '.join(sorted(unknown))}' for key '{key}'."
            )

        self._fields: dict[str, Any] = {
            name: self.__read_field(entry, name, accepted, fallback)
            for name, (accepted, fallback) in self._OPTIONAL_FIELDS.items()
        }

    def __read_field(
        self,
        entry: dict[str, Any],
        name: str,
        accepted: Optional[tuple[type, ...]],
        fallback: Any,
    ) -> Any:
        """
        Raises:
            ConfigError: The field value has not an accepted type.
        """
        value = entry.get(name, fallback)
        if name not in entry or accepted is None or isinstance(value, accepted):
            return value

        names = " or ".join(f"'{t.__name__}'" for t in accepted)
        raise ConfigError(
            f"Field '{name}' of key '{self._key}' must be a {names}, "
            f"got '{value}'."
        )

    @property
    def default(self) -> Any:
        return self._fields["default"]

    @property
    def comment(self) -> Optional[str]:
        return self._fields["comment"]

    def check_and_convert(self, value: str) -> ConversionResult:
        """
        Check the rules for the given .ini value and convert it to its
        declared type. An empty optional value converts to `None`.
        """
        if not value:
            if self._fields["required"]:
                return ConversionResult(True, "Value is required", None)
            return ConversionResult(False, None, None)

        try:
            converted = self._CONV_MAP[self._vartype](value)
        except ValueError:
            return ConversionResult(
                True, f"'{value}' is not a valid '{self._vartype}'", None
            )

        error = self.__check_rules(converted)
        if error:
            return ConversionResult(True, error, None)
        return ConversionResult(False, None, converted)

    def __check_rules(self, converted: Any) -> Optional[str]:
        low, high = self._fields["min"], self._fields["max"]
        choices = self._fields["choices"]

        # bool is an int but has no range
        if isinstance(converted, (int, float)) and not isinstance(converted, bool):
            if low is not None and converted < low:
                return f"{converted} is lower than {low}"
            if high is not None and converted > high:
                return f"{converted} is greater than {high}"

        if choices is not None and converted not in choices:
            return f"'{converted}' is not one of {choices}"
        return None


class ConfigParser:
    """
    Loads a configuration file (.ini), validates it against its schema
    (.json) and provides a read-only view on the converted values.
    """

    def __init__(
        self,
        schema: str | TextIO,
        config: Optional[str | TextIO] = None,
        name: Optional[str] = None,
        gen_default: bool = True,
    ):
        """
        If the configuration is given as a path and no file exists there,
        a default configuration is generated from the schema.

        Args:
            schema (str | TextIO): Path to the schema file (.json) or an
                opened file-like object.
            config (str | TextIO | None): Path to the configuration file
                (.ini), an opened file-like object or `None` to only load
                the schema.
            name (Optional[str]): Configuration name used in messages.
                Defaults to the file name, required for file-like objects.
            gen_default (bool): Generate the missing configuration file.

        Raises:
            ConfigError: Any parsing or validation error.
        """
        self._schema: dict[str, dict[str, _SchemaEntry]] = {}
        self._config = configparser.ConfigParser(interpolation=None)
        self._data: dict[str, dict[str, Any]] = {}
        self._config_path = config

        if not name:
            if not isinstance(config, str):
                raise ConfigError("A configuration name is required.")
            name = Path(config).name
        self._name = name

        self.__load_schema(schema)

        if gen_default and isinstance(config, str) and not Path(config).exists():
            try:
                with open(config, "x+", encoding="utf-8") as file:
                    self.generate_default(file)
            except Exception as e:
                raise ConfigError(
                    f"Error generating the default configuration '{self._name}'."
                ) from e
            logger.info(f"Default configuration file created under '{config}'.")

        if config:
            self.load_and_check_config(config)

    @property
    def name(self) -> str:
        return self._name

    def __load_schema(self, source: str | TextIO):
        try:
            if isinstance(source, str):
                with open(source, "r", encoding="utf-8") as file:
                    schema = json.load(file)
            else:
                schema = json.load(source)

        except FileNotFoundError:
            raise ConfigError(f"Schema file not found for '{self._name}'.")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Schema parsing error for '{self._name}'.") from e
        except OSError as e:
            raise ConfigError(f"OS error opening the schema of '{self._name}'.") from e

        for section, keys in schema.items():
            self._schema[section] = {
                key: _SchemaEntry(key, entry) for key, entry in keys.items()
            }

    def __load_config(self, source: str | TextIO):
        try:
            if isinstance(source, str):
                with open(source, encoding="utf-8") as file:
                    self._config.read_file(file)
            else:
                self._config.read_file(source)

        except configparser.Error as e:
            raise ConfigError(f"Parsing error reading '{self._name}'.") from e
        except OSError as e:
            raise ConfigError(f"OS error reading '{self._name}'.") from e

    def load_and_check_config(self, source: str | TextIO):
        """
        Load the given configuration and validate it against the schema.
        """
        self.__load_config(source)
        self.__validate_data()

    def generate_default(self, stream: TextIO, annotate: bool = True):
        """
        Write a default configuration inferred from the schema.

        Args:
            stream (TextIO): Writable and seekable stream.
            annotate (bool): Add the schema comments before the keys.
        """
        config = configparser.ConfigParser(interpolation=None)
        for section, entries in self._schema.items():
            config[section] = {
                key: "" if entry.default is None else _value_to_str(entry.default)
                for key, entry in entries.items()
            }

        config.write(stream, space_around_delimiters=True)

        if annotate:
            self.__annotate_config(stream)

    def __annotate_config(self, stream: TextIO):
        """
        Insert the schema comments before the known keys of the INI text
        held by the stream.
        """
        section = None
        out_lines = []

        stream.seek(0)
        for line in stream:
            stripped = line.strip()
            if stripped.startswith("[") and stripped.endswith("]"):
                section = stripped.strip("[]")
            elif "=" in stripped and section in self._schema:
                key = stripped.split("=", 1)[0].strip()
                entry = self._schema[section].get(key)
                if entry and entry.comment:
                    out_lines.append(f"; {entry.comment}\n")
            out_lines.append(line)

        # The annotated text is at least as long as the original
        stream.seek(0)
        stream.writelines(out_lines)

    def __validate_data(self):
        diff = self.__compare(self._schema.keys(), self._config.sections())
        if diff:
            raise ConfigError(
                f"'{self._name}' sections differ from model: {', '.join(diff)}."
            )

        for section, entries in self._schema.items():
            diff = self.__compare(entries.keys(), self._config[section].keys())
            if diff:
                raise ConfigError(
                    f"'{self._name}' section [{section}] differs from model: "
                    f"{', '.join(diff)}."
                )

            self._data[section] = {}
            for key, entry in entries.items():
                result = entry.check_and_convert(self._config[section][key])
                if result.error:
                    raise ConfigError(
                        f"Value for key '{key}' in section '{section}' is invalid: "
                        f"{result.message}."
                    )
                self._data[section][key] = result.value

    @staticmethod
    def __compare(model: Iterable[str], config: Iterable[str]) -> list[str]:
        """
        List the missing (-) and extra (+) names of `config`.
        """
        model, config = set(model), set(config)
        missing = [f"-{e}" for e in sorted(model - config)]
        extra = [f"+{e}" for e in sorted(config - model)]
        return missing + extra

    def get_view(self) -> MappingProxyType[str, MappingProxyType[str, Any]]:
        """
        Returns:
            MappingProxyType: Read-only view on the configuration data.
                Inner mappings reflect later `set_value()` calls.
        """
        return MappingProxyType(
            {
                section: MappingProxyType(values)
                for section, values in self._data.items()
            }
        )

    def set_value(self, section: str, key: str, value: Any):
        """
        Change an existing value and save the configuration file if it
        has been loaded from a path.

        Raises:
            ConfigError: Unknown section or key, or value breaking the
                schema rules.
        """
        if section not in self._config or key not in self._config[section]:
            raise ConfigError(
                f"Section '{section}' or key '{key}' doesn't exist in '{self._name}'."
            )

        try:
            value_str = _value_to_str(value)
        except ValueError:
            raise ConfigError(
                f"Cannot write value '{value}' of type '{type(value).__name__}'."
            )

        result = self._schema[section][key].check_and_convert(value_str)
        if result.error:
            raise ConfigError(
                f"The value '{value_str}' is invalid for [{section}] {key}: "
                f"{result.message}."
            )

        self._data[section][key] = result.value
        self._config.set(section, key, value_str)

        if isinstance(self._config_path, str):
            self.__save(self._config_path)

    def __save(self, path: str):
        """
        Rewrite the configuration file with the current values, annotated
        with the schema comments.
        """
        try:
            with open(path, "w+", encoding="utf-8") as file:
                self._config.write(file, space_around_delimiters=True)
                self.__annotate_config(file)
        except OSError as e:
            raise ConfigError(f"Unable to save '{self._name}' under '{path}'.") from e
        logger.info(f"Configuration '{self._name}' saved under '{path}'.")
