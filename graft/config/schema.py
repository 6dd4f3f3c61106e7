"""
Configuration Schema System.

This module provides schema declaration and validation for project settings.

Key features:
- Typed field definitions with constraints
- Element type checks for list fields
- Validation of a whole settings table against a schema
"""

import copy
from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Base exception for schema-related errors."""

    pass


class ValidationError(SchemaError):
    """Raised when value validation fails."""

    pass


def _is_instance(value: Any, type_: type) -> bool:
    """isinstance() that refuses bools where ints are expected."""
    if type_ in (int, float) and isinstance(value, bool):
        return False
    return isinstance(value, type_)


@dataclass
class ConfigField:
    """
    Represents a configuration field with type and constraints.

    Attributes:
        type_: The expected type of the field value
        default: Default value for the field
        description: Human-readable description (emitted as TOML comment)
        min: Minimum value (numbers) or minimum length (strings/lists)
        max: Maximum value (numbers) or maximum length (strings/lists)
        choices: List of allowed values (optional)
        item_type: Element type for list fields (optional)
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: list[Any] | None = None
    item_type: type | None = None

    def __post_init__(self):
        """Validate field definition."""
        if not _is_instance(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )

        if (self.min is not None or self.max is not None) and self.type_ not in (
            int,
            float,
            str,
            list,
        ):
            raise SchemaError(
                f"min/max constraints only supported for int, float, str, list. Got {self.type_.__name__}"
            )

        if self.item_type is not None and self.type_ is not list:
            raise SchemaError("item_type is only supported for list fields")

        if self.choices is not None:
            for choice in self.choices:
                if not _is_instance(choice, self.type_):
                    raise SchemaError(
                        f"Choice {choice!r} does not match type {self.type_.__name__}"
                    )
            if self.default not in self.choices:
                raise SchemaError(
                    f"Default value {self.default!r} not in choices {self.choices}"
                )

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field's constraints.

        Args:
            value: The value to validate

        Raises:
            ValidationError: If validation fails
        """
        if not _is_instance(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Value {value!r} not in allowed choices {self.choices}"
            )

        if self.type_ in (int, float):
            if self.min is not None and value < self.min:
                raise ValidationError(f"Value {value} is less than minimum {self.min}")
            if self.max is not None and value > self.max:
                raise ValidationError(
                    f"Value {value} is greater than maximum {self.max}"
                )

        if self.type_ in (str, list):
            kind = "String" if self.type_ is str else "List"
            if self.min is not None and len(value) < self.min:
                raise ValidationError(
                    f"{kind} length {len(value)} is less than minimum {self.min}"
                )
            if self.max is not None and len(value) > self.max:
                raise ValidationError(
                    f"{kind} length {len(value)} is greater than maximum {self.max}"
                )

        if self.item_type is not None:
            for item in value:
                if not _is_instance(item, self.item_type):
                    raise ValidationError(
                        f"List item {item!r} is not of type {self.item_type.__name__}"
                    )


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> None:
    """
    Validate a settings table against a schema.

    Fields missing from the table are allowed; their defaults apply.

    Args:
        config: The settings dictionary to validate
        schema: The schema dictionary (field_name -> ConfigField)

    Raises:
        ValidationError: If validation fails
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    for field_name, field in schema.items():
        if field_name not in config:
            continue
        try:
            field.validate(config[field_name])
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e


def apply_defaults(
    config: dict[str, Any], schema: dict[str, ConfigField]
) -> dict[str, Any]:
    """
    Merge a partial settings table over the schema defaults.

    Args:
        config: Partial settings (already validated)
        schema: The schema dictionary (field_name -> ConfigField)

    Returns:
        A complete settings dictionary
    """
    merged = {name: copy.deepcopy(field.default) for name, field in schema.items()}
    merged.update(config)
    return merged
