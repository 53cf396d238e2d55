"""Custom exceptions for configuration management."""

from typing import Any, Dict, Iterable, List, Optional


class ConfigurationError(Exception):
    """
    Exception raised when configuration validation fails.

    Stores every validation error found in one pass together with
    suggestions, so the operator can fix the whole file at once.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Primary error message
            errors: List of specific validation errors
            suggestions: List of helpful suggestions to fix the errors
        """
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    @classmethod
    def from_pydantic_errors(
        cls, message: str, pydantic_errors: Iterable[Dict[str, Any]]
    ) -> "ConfigurationError":
        """Build an error from ``ValidationError.errors()`` output.

        Args:
            message: Primary error message
            pydantic_errors: Error dictionaries as produced by pydantic

        Returns:
            ConfigurationError with one readable line per field error
        """
        errors = []
        for error in pydantic_errors:
            field_path = " -> ".join(str(loc) for loc in error.get("loc", ())) or "<root>"
            error_type = error.get("type", "")

            if error_type == "missing":
                errors.append(f"Missing required field: {field_path}")
            elif error_type in ("string_type", "int_type", "bool_type", "float_type"):
                expected_type = error_type.replace("_type", "")
                errors.append(
                    f"Invalid type for '{field_path}': expected {expected_type}, "
                    f"got {error.get('input')!r}"
                )
            elif error_type == "extra_forbidden":
                errors.append(f"Unknown field: {field_path}")
            else:
                errors.append(f"{field_path}: {error.get('msg')}")

        return cls(
            message,
            errors=errors,
            suggestions=[
                "Review config.example.yaml for correct format",
                "Verify field types match the expected schema",
            ],
        )

    def _format_message(self) -> str:
        """Format the error message with all errors and suggestions."""
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"  - {suggestion}")

        return "\n".join(parts)
