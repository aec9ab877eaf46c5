"""
Job parameter conversion between startup arguments and ``JobParameters``.

Argument format::

    key=value[,type[,identifying]]

``type`` is one of the registered type names (built in: str, int, float,
bool, date, datetime) and defaults to ``str``; ``identifying`` is
``true``/``false`` and defaults to ``true``.  A value may itself contain
commas as long as the trailing segments do not look like a type name.

Converters are extensible: a ``ParameterConverterCustomizer`` receives the
``ParameterConverters`` table at assembly time and may register extra types.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from batch_kernel.exceptions import JobParametersInvalidError

from batch_launch.domain.types import JobParameter, JobParameters

Parser = Callable[[str], Any]
ParameterConverterCustomizer = Callable[["ParameterConverters"], None]


def _parse_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"not a boolean: {text!r}")


def _parse_decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        raise ValueError(f"not a decimal: {text!r}") from None


class ParameterConverters:
    """Table of parameter type names to parser callables."""

    def __init__(self) -> None:
        self._parsers: dict[str, Parser] = {}
        self._aliases: dict[str, str] = {}

    @classmethod
    def with_defaults(cls) -> ParameterConverters:
        converters = cls()
        converters.register("str", str, aliases=("string",))
        converters.register("int", int, aliases=("integer", "long"))
        converters.register("float", float, aliases=("double",))
        converters.register("bool", _parse_bool, aliases=("boolean",))
        converters.register("date", date.fromisoformat)
        converters.register("datetime", datetime.fromisoformat)
        converters.register("decimal", _parse_decimal)
        return converters

    def register(self, type_name: str, parser: Parser, aliases: Iterable[str] = ()) -> None:
        """Register (or replace) a parser for ``type_name``."""
        canonical = type_name.lower()
        self._parsers[canonical] = parser
        self._aliases[canonical] = canonical
        for alias in aliases:
            self._aliases[alias.lower()] = canonical

    def canonical_name(self, type_name: str) -> str | None:
        return self._aliases.get(type_name.strip().lower())

    def parse(self, type_name: str, text: str) -> Any:
        canonical = self.canonical_name(type_name)
        if canonical is None:
            raise KeyError(type_name)
        return self._parsers[canonical](text)

    def __contains__(self, type_name: object) -> bool:
        return isinstance(type_name, str) and self.canonical_name(type_name) is not None


class DefaultJobParametersConverter:
    """Converts ``key=value[,type[,identifying]]`` strings to JobParameters."""

    def __init__(
        self,
        converters: ParameterConverters | None = None,
        customizers: Iterable[ParameterConverterCustomizer] = (),
    ):
        self.converters = converters or ParameterConverters.with_defaults()
        for customizer in customizers:
            customizer(self.converters)

    def from_args(self, args: Iterable[str]) -> JobParameters:
        """Parse startup arguments.

        Raises:
            JobParametersInvalidError: On a malformed argument or a value
                that does not parse as its declared type.
        """
        parameters: dict[str, JobParameter] = {}
        for arg in args:
            key, sep, encoded = arg.partition("=")
            key = key.strip()
            if not sep or not key:
                raise JobParametersInvalidError(
                    f"argument {arg!r} is not of the form key=value"
                )
            parameters[key] = self.parse_parameter(key, encoded)
        return JobParameters(parameters)

    def parse_parameter(self, key: str, encoded: str) -> JobParameter:
        value_text, type_name, identifying = self._split(encoded)
        return self.decode(key, value_text, type_name, identifying)

    def decode(
        self, key: str, value_text: str, type_name: str, identifying: bool = True,
    ) -> JobParameter:
        """Build a typed parameter from its stored string form."""
        canonical = self.converters.canonical_name(type_name)
        if canonical is None:
            raise JobParametersInvalidError(
                f"unknown type {type_name!r} for parameter {key!r}"
            )
        try:
            value = self.converters.parse(canonical, value_text)
        except (TypeError, ValueError) as exc:
            raise JobParametersInvalidError(
                f"cannot convert {value_text!r} to {canonical} for parameter {key!r}: {exc}"
            ) from exc
        return JobParameter(value, canonical, identifying)

    def to_args(self, parameters: JobParameters) -> list[str]:
        """Inverse of ``from_args``."""
        return [
            f"{name}={p.as_string()},{p.type_name},{'true' if p.identifying else 'false'}"
            for name, p in parameters.items()
        ]

    def _split(self, encoded: str) -> tuple[str, str, bool]:
        parts = encoded.split(",")
        if (
            len(parts) >= 3
            and parts[-1].strip().lower() in ("true", "false")
            and parts[-2] in self.converters
        ):
            return (
                ",".join(parts[:-2]),
                parts[-2],
                parts[-1].strip().lower() == "true",
            )
        if len(parts) >= 2 and parts[-1] in self.converters:
            return ",".join(parts[:-1]), parts[-1], True
        return encoded, "str", True
