"""Registry of named value transformations."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from string import Template
from types import MappingProxyType
from typing import Any

from formmapper import logger
from formmapper.compatibility import type_class
from formmapper.exceptions import TransformationError
from formmapper.processing.formatting import (
    DEFAULT_DATE_FORMAT,
    format_date,
    format_number,
    format_ssn,
    format_us_phone,
    has_date_tokens,
    parse_datetime,
    round_half_up,
    to_decimal,
)
from formmapper.typing.enums import FieldType, TypeClass
from formmapper.typing.models import ValidationResult

Params = Mapping[str, Any]
TransformFn = Callable[[Any, Params], Any]
ValidateFn = Callable[[Any, Params], ValidationResult]

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
_NUMBER_FORMAT_PATTERN = re.compile(r"^[#,]*0(?:\.0+)?$")
_ALL_CLASSES = frozenset(TypeClass)


@dataclass(frozen=True)
class Transformation:
    """Handler of one named transformation."""

    transform: TransformFn
    validate: ValidateFn
    param_names: tuple[str, ...] = ()
    applies_to: frozenset[TypeClass] = frozenset()
    description: str = ""


def _always_valid(value: Any, params: Params) -> ValidationResult:  # noqa: ARG001
    return ValidationResult(is_valid=True)


def make_transformation(
    transform: TransformFn,
    *,
    validate: ValidateFn | None = None,
    param_names: tuple[str, ...] = (),
    applies_to: frozenset[TypeClass] | set[TypeClass] = frozenset(),
    description: str = "",
) -> Transformation:
    """Build a handler for runtime registration.

    Handlers without `applies_to` are offered for every field pair.
    """
    return Transformation(
        transform=transform,
        validate=validate or _always_valid,
        param_names=tuple(param_names),
        applies_to=frozenset(applies_to),
        description=description,
    )


def _require_string(value: Any, params: Params) -> ValidationResult:  # noqa: ARG001
    if not isinstance(value, str):
        return ValidationResult.from_errors(["Value must be a string"])
    return ValidationResult(is_valid=True)


def _require_number(value: Any, params: Params) -> ValidationResult:  # noqa: ARG001
    if to_decimal(value) is None:
        return ValidationResult.from_errors(["Value must be a number"])
    return ValidationResult(is_valid=True)


def _parse_decimals(params: Params) -> int | None:
    raw = params.get("decimals")
    if raw in (None, ""):
        return 0
    if isinstance(raw, bool):
        return None
    try:
        decimals = int(raw)
    except (TypeError, ValueError):
        return None
    return decimals if decimals >= 0 else None


def _validate_round(value: Any, params: Params) -> ValidationResult:
    errors = list(_require_number(value, params).errors)
    if _parse_decimals(params) is None:
        errors.append("Decimals must be a non-negative integer")
    return ValidationResult.from_errors(errors)


def _round(value: Any, params: Params) -> int | float:
    decimals = _parse_decimals(params) or 0
    rounded = round_half_up(to_decimal(value), decimals)
    return int(rounded) if decimals == 0 else float(rounded)


def _validate_date(value: Any, params: Params) -> ValidationResult:
    errors: list[str] = []
    if parse_datetime(value) is None:
        errors.append("Invalid date format")
    pattern = params.get("format")
    if pattern and (not isinstance(pattern, str) or not has_date_tokens(pattern)):
        errors.append(f"Invalid date format string: {pattern}")
    return ValidationResult.from_errors(errors)


def _format_date(value: Any, params: Params) -> str:
    return format_date(parse_datetime(value), params.get("format") or DEFAULT_DATE_FORMAT)


def _validate_number_format(value: Any, params: Params) -> ValidationResult:
    errors = list(_require_number(value, params).errors)
    pattern = params.get("format") or "0"
    if not isinstance(pattern, str) or not _NUMBER_FORMAT_PATTERN.match(pattern):
        errors.append(f"Invalid number format: {pattern}")
    return ValidationResult.from_errors(errors)


def _validate_expression(value: Any, params: Params) -> ValidationResult:  # noqa: ARG001
    expression = params.get("expression")
    if not expression or not isinstance(expression, str):
        return ValidationResult.from_errors(["Custom expression is required"])
    template = Template(expression)
    if not template.is_valid():
        return ValidationResult.from_errors([f"Invalid custom expression: {expression}"])
    unknown = sorted(set(template.get_identifiers()) - {"value"})
    if unknown:
        return ValidationResult.from_errors([f"Unknown placeholders in custom expression: {', '.join(unknown)}"])
    return ValidationResult(is_valid=True)


def _capitalize(value: str, params: Params) -> str:  # noqa: ARG001
    return value[:1].upper() + value[1:].lower()


_STRING = frozenset({TypeClass.STRING})
_NUMBER = frozenset({TypeClass.NUMBER})
_DATE = frozenset({TypeClass.DATE})

BUILTIN_TRANSFORMATIONS: Mapping[str, Transformation] = MappingProxyType(
    {
        "uppercase": Transformation(lambda v, _: v.upper(), _require_string, applies_to=_STRING),
        "lowercase": Transformation(lambda v, _: v.lower(), _require_string, applies_to=_STRING),
        "capitalize": Transformation(_capitalize, _require_string, applies_to=_STRING),
        "trim": Transformation(lambda v, _: v.strip(), _require_string, applies_to=_STRING),
        "formatPhone": Transformation(
            lambda v, _: format_us_phone(v),
            _require_string,
            applies_to=_STRING,
            description="US phone number, (XXX) XXX-XXXX",
        ),
        "formatSSN": Transformation(
            lambda v, _: format_ssn(v),
            _require_string,
            applies_to=_STRING,
            description="Social security number, XXX-XX-XXXX",
        ),
        "formatDate": Transformation(
            _format_date,
            _validate_date,
            param_names=("format",),
            applies_to=_DATE,
            description="Date rendered with YYYY/MM/DD/HH/hh/mm/ss/A tokens",
        ),
        "round": Transformation(_round, _validate_round, param_names=("decimals",), applies_to=_NUMBER),
        "floor": Transformation(lambda v, _: math.floor(to_decimal(v)), _require_number, applies_to=_NUMBER),
        "ceil": Transformation(lambda v, _: math.ceil(to_decimal(v)), _require_number, applies_to=_NUMBER),
        "formatNumber": Transformation(
            lambda v, p: format_number(to_decimal(v), p.get("format") or "0"),
            _validate_number_format,
            param_names=("format",),
            applies_to=_NUMBER,
            description="Number rendered with a 0.00 / #,##0.00 pattern",
        ),
        "custom": Transformation(
            lambda v, p: Template(p["expression"]).substitute(value=v),
            _validate_expression,
            param_names=("expression",),
            applies_to=_ALL_CLASSES,
            description="Template where $value is replaced by the source value",
        ),
    },
)


class TransformationRegistry:
    """Name -> handler map with built-ins and runtime registrations."""

    def __init__(self, *, include_builtins: bool = True) -> None:
        """Initialize the registry.

        Args:
            include_builtins (bool): Seed the registry with the built-in transformations.
        """
        self._handlers: dict[str, Transformation] = dict(BUILTIN_TRANSFORMATIONS) if include_builtins else {}
        self._builtin_names = frozenset(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def names(self) -> list[str]:
        """Return registered names in registration order."""
        return list(self._handlers)

    def get(self, name: str) -> Transformation | None:
        """Return the handler registered under `name`."""
        return self._handlers.get(name)

    def register(self, name: str, handler: Transformation, *, replace: bool = False) -> None:
        """Register a custom transformation.

        Args:
            name (str): Transformation name (letters, digits, underscores).
            handler (Transformation): Transformation handler.
            replace (bool): Allow overriding a built-in transformation.

        Raises:
            TransformationError: If the name or handler is malformed, or a built-in would be overridden.
        """
        if not isinstance(name, str) or not _NAME_PATTERN.match(name):
            raise TransformationError(message=f"Invalid transformation name: {name!r}", transformation=str(name))
        if not isinstance(handler, Transformation):
            raise TransformationError(message=f"Handler for '{name}' must be a Transformation", transformation=name)
        if not callable(handler.transform) or not callable(handler.validate):
            raise TransformationError(
                message=f"Handler for '{name}' needs callable transform and validate",
                transformation=name,
            )
        if name in self._builtin_names and not replace:
            raise TransformationError(message=f"Cannot override built-in transformation '{name}'", transformation=name)

        self._handlers[name] = handler
        logger.debug("Transformation registered", extra={"transformation": name})

    def validate(self, value: Any, name: str, params: Params | None = None) -> ValidationResult:
        """Run the validator of transformation `name` against `value`.

        Raises:
            TransformationError: If `name` is not registered.
        """
        return self._require(name).validate(value, params or {})

    def transform(self, value: Any, name: str, params: Params | None = None) -> Any:
        """Validate then apply transformation `name` to `value`.

        Args:
            value (Any): Source value.
            name (str): Transformation name.
            params (Params | None): Transformation parameters.

        Raises:
            TransformationError: If the transformation is unknown, rejects the input, or fails.

        Returns:
            Any: Transformed value.
        """
        handler = self._require(name)
        resolved = params or {}
        validation = handler.validate(value, resolved)
        if not validation.is_valid:
            raise TransformationError(message=", ".join(validation.errors), transformation=name)
        try:
            return handler.transform(value, resolved)
        except TransformationError:
            raise
        except Exception as exc:
            raise TransformationError(message=f"Transformation '{name}' failed: {exc}", transformation=name) from exc

    def get_available_transformations(self, source_type: FieldType | str, target_type: FieldType | str) -> list[str]:
        """Return transformations applicable to either side of a field pair.

        Args:
            source_type (FieldType | str): Source field type.
            target_type (FieldType | str): Target field type.

        Returns:
            list[str]: Deduplicated names in registration order.
        """
        classes = {cls for cls in (type_class(source_type), type_class(target_type)) if cls is not None}
        return [
            name
            for name, handler in self._handlers.items()
            if not handler.applies_to or handler.applies_to == _ALL_CLASSES or handler.applies_to & classes
        ]

    def get_transformation_params(self, name: str) -> list[str]:
        """Return declared parameter names of `name`, empty when unknown."""
        handler = self.get(name)
        return list(handler.param_names) if handler else []

    def params_from_format(self, name: str, format_value: str | None) -> dict[str, str]:
        """Map a free-form format string onto the first declared parameter of `name`."""
        param_names = self.get_transformation_params(name)
        if not format_value or not param_names:
            return {}
        return {param_names[0]: format_value}

    def _require(self, name: str) -> Transformation:
        handler = self.get(name)
        if handler is None:
            raise TransformationError(message=f"Unknown transformation type: {name}", transformation=name)
        return handler
