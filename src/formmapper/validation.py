"""Mapping and field-value validation."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from formmapper.compatibility import is_compatible
from formmapper.exceptions import RuleExecutionError
from formmapper.processing.formatting import parse_datetime, to_decimal
from formmapper.resolver import get_dependency_closure, resolve_source_schema
from formmapper.typing.enums import FieldType, SourceType
from formmapper.typing.models import FieldMapping, FieldSchema, FormGraph, ValidationResult

if TYPE_CHECKING:
    from formmapper.transformations import TransformationRegistry

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^\+?[\d\s\-()]{10,}$")
SSN_REGEX = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
ZIP_REGEX = re.compile(r"^\d{5}(-\d{4})?$")


@dataclass(frozen=True)
class ValidationRule:
    """Predicate over a field value plus the message reported when it fails."""

    check: Callable[[Any], bool]
    message: str


def _matches(pattern: re.Pattern[str]) -> Callable[[Any], bool]:
    return lambda value: isinstance(value, str) and pattern.match(value) is not None


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def _is_integer(value: Any) -> bool:
    number = to_decimal(value)
    return number is not None and number == number.to_integral_value()


COMMON_RULE_SETS: MappingProxyType[str, tuple[ValidationRule, ...]] = MappingProxyType(
    {
        "email": (ValidationRule(_matches(EMAIL_REGEX), "Invalid email format"),),
        "phone": (ValidationRule(_matches(PHONE_REGEX), "Invalid phone number format"),),
        "ssn": (ValidationRule(_matches(SSN_REGEX), "Invalid SSN format (XXX-XX-XXXX)"),),
        "zip": (ValidationRule(_matches(ZIP_REGEX), "Invalid ZIP code format"),),
        "required": (ValidationRule(_is_present, "This field is required"),),
        "number": (ValidationRule(lambda value: to_decimal(value) is not None, "Must be a valid number"),),
        "integer": (ValidationRule(_is_integer, "Must be a valid integer"),),
        "date": (ValidationRule(lambda value: parse_datetime(value) is not None, "Must be a valid date"),),
    },
)


def incompatible_types_message(source_type: FieldType | str, target_type: FieldType | str) -> str:
    """Return the message reported for an incompatible field pair."""
    return f"Incompatible field types: {source_type} cannot be mapped to {target_type}"


class ValidationService:
    """Validates mappings, field pairs and field values."""

    def __init__(self, transformations: TransformationRegistry | None = None) -> None:
        """Initialize the service.

        Args:
            transformations (TransformationRegistry | None): Registry used to reject unknown
                transformation names. Without it only the presence of a name is checked.
        """
        self._transformations = transformations
        self._custom_rules: dict[str, list[ValidationRule]] = {}

    # Field values

    def register_rule_set(self, name: str, rules: Sequence[ValidationRule], *, replace: bool = False) -> None:
        """Add rules under `name`, appended after any built-in rules of the same name.

        Args:
            name (str): Rule-set name, typically a field type.
            rules (Sequence[ValidationRule]): Rules to add.
            replace (bool): Drop previously registered custom rules of `name` first.

        Raises:
            ValueError: If the name is blank or a rule is malformed.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Rule-set name must be a non-empty string")
        if not rules:
            raise ValueError(f"Rule-set '{name}' needs at least one rule")
        for rule in rules:
            if not isinstance(rule, ValidationRule) or not callable(rule.check) or not rule.message:
                raise ValueError(f"Rule-set '{name}' contains a malformed rule: {rule!r}")

        existing = [] if replace else self._custom_rules.get(name, [])
        self._custom_rules[name] = [*existing, *rules]

    def rule_sets(self) -> list[str]:
        """Return every known rule-set name."""
        return sorted({*COMMON_RULE_SETS, *self._custom_rules})

    def validate_field_value(self, value: Any, rule_set: str) -> ValidationResult:
        """Apply every rule of `rule_set` and report each failing message.

        Unknown rule-set names have no rules and always validate.

        Raises:
            RuleExecutionError: If a rule raises instead of returning a verdict.
        """
        errors: list[str] = []
        for rule in (*COMMON_RULE_SETS.get(rule_set, ()), *self._custom_rules.get(rule_set, ())):
            try:
                passed = rule.check(value)
            except Exception as exc:
                raise RuleExecutionError(rule_set=rule_set, exc=exc) from exc
            if not passed:
                errors.append(rule.message)
        return ValidationResult.from_errors(errors)

    def validate_value_against_schema(
        self,
        value: Any,
        field_schema: FieldSchema,
        *,
        required: bool = False,
    ) -> ValidationResult:
        """Check a value against the constraints declared by a field schema.

        Args:
            value (Any): Field value.
            field_schema (FieldSchema): Field schema with optional constraints.
            required (bool): Whether the owning schema marks the field as required.

        Returns:
            ValidationResult: Constraint violations.
        """
        if not _is_present(value):
            return ValidationResult.from_errors(["This field is required"] if required else [])

        errors: list[str] = []
        if field_schema.enum is not None and value not in field_schema.enum:
            errors.append(f"Value must be one of: {', '.join(str(option) for option in field_schema.enum)}")

        if isinstance(value, str):
            if field_schema.pattern and re.search(field_schema.pattern, value) is None:
                errors.append(f"Value does not match pattern {field_schema.pattern}")
            if field_schema.min_length is not None and len(value) < field_schema.min_length:
                errors.append(f"Must be at least {field_schema.min_length} characters")
            if field_schema.max_length is not None and len(value) > field_schema.max_length:
                errors.append(f"Must be at most {field_schema.max_length} characters")

        if field_schema.minimum is not None or field_schema.maximum is not None:
            number = to_decimal(value)
            if number is None:
                errors.append("Must be a valid number")
            else:
                if field_schema.minimum is not None and number < to_decimal(field_schema.minimum):
                    errors.append(f"Must be greater than or equal to {field_schema.minimum:g}")
                if field_schema.maximum is not None and number > to_decimal(field_schema.maximum):
                    errors.append(f"Must be less than or equal to {field_schema.maximum:g}")

        return ValidationResult.from_errors(errors)

    # Field types

    def validate_field_types(self, source_type: FieldType | str, target_type: FieldType | str) -> bool:
        """Return whether the pair is compatible."""
        return is_compatible(source_type, target_type)

    def check_field_types(self, source_type: FieldType | str, target_type: FieldType | str) -> ValidationResult:
        """Return the compatibility verdict with its message."""
        if is_compatible(source_type, target_type):
            return ValidationResult(is_valid=True)
        return ValidationResult.from_errors([incompatible_types_message(source_type, target_type)])

    def validate_field_schemas(self, source: FieldSchema, target: FieldSchema) -> ValidationResult:
        """Check type compatibility, enum overlap and shared nested properties.

        Args:
            source (FieldSchema): Source field schema.
            target (FieldSchema): Target field schema.

        Returns:
            ValidationResult: First incompatibility found, if any.
        """
        types = self.check_field_types(source.semantic_type, target.semantic_type)
        if not types.is_valid:
            return types

        if source.enum and target.enum and not any(option in target.enum for option in source.enum):
            return ValidationResult.from_errors(["No common values between source and target enums"])

        if source.type == FieldType.OBJECT and target.type == FieldType.OBJECT:
            shared = set(source.properties or {}) & set(target.properties or {})
            for key in sorted(shared):
                nested = self.validate_field_schemas(source.properties[key], target.properties[key])
                if not nested.is_valid:
                    return nested

        return ValidationResult(is_valid=True)

    # Mappings

    def validate_mapping(self, mapping: FieldMapping, graph: FormGraph | None = None) -> ValidationResult:
        """Validate one mapping.

        Structural checks always run. With a graph, the source form must be upstream of
        the target and, when both field schemas resolve, the field pair must be compatible.

        Args:
            mapping (FieldMapping): Mapping to validate.
            graph (FormGraph | None): Graph used for dependency and type checks.

        Returns:
            ValidationResult: Every problem found.
        """
        errors: list[str] = []
        if not mapping.target_form_id:
            errors.append("Target form ID is required")
        if not mapping.target_field_id:
            errors.append("Target field ID is required")

        source = mapping.source
        if source is None:
            errors.append("Source field is required")
        else:
            if not source.field_id:
                errors.append("Source field ID is required")
            if source.type != SourceType.GLOBAL and not source.form_id:
                errors.append(f"Source form ID is required for {source.type} mappings")

        transformation = mapping.transformation
        if transformation is not None:
            if not transformation.type:
                errors.append("Transformation type is required")
            elif self._transformations is not None and transformation.type not in self._transformations:
                errors.append(f"Unknown transformation type: {transformation.type}")

        if errors or graph is None:
            return ValidationResult.from_errors(errors)
        return ValidationResult.from_errors(self._graph_errors(mapping, graph))

    def validate_mappings(self, mappings: Sequence[FieldMapping], graph: FormGraph | None = None) -> ValidationResult:
        """Validate a mapping set, including the one-mapping-per-target-field policy."""
        errors: list[str] = []
        for mapping in mappings:
            result = self.validate_mapping(mapping, graph)
            prefix = f"Mapping {mapping.id}: " if mapping.id else ""
            errors.extend(f"{prefix}{error}" for error in result.errors)

        targets = Counter((mapping.target_form_id, mapping.target_field_id) for mapping in mappings)
        errors.extend(
            f"Target field '{field_id}' of form '{form_id}' is mapped more than once"
            for (form_id, field_id), count in targets.items()
            if count > 1
        )
        return ValidationResult.from_errors(errors)

    def _graph_errors(self, mapping: FieldMapping, graph: FormGraph) -> list[str]:
        source = mapping.source
        if graph.node(mapping.target_form_id) is None:
            return [f"Target form '{mapping.target_form_id}' not found in graph"]
        if source.type != SourceType.GLOBAL and source.form_id not in get_dependency_closure(
            graph,
            mapping.target_form_id,
        ):
            return [f"Source form '{source.form_id}' is not an upstream dependency of '{mapping.target_form_id}'"]

        target_schema = graph.field_schema(mapping.target_form_id, mapping.target_field_id)
        source_schema = resolve_source_schema(graph, source)
        if target_schema is None or source_schema is None:
            return []
        return self.validate_field_schemas(source_schema, target_schema).errors
