from __future__ import annotations


class PangeaError(Exception):
    pass


class AttributeValidationError(PangeaError, ValueError):
    """Raised when resource attributes fail schema or cross-field validation."""

    def __init__(self, resource_type: str, errors: list[str]) -> None:
        self.resource_type = resource_type
        self.errors = errors
        detail = "; ".join(errors) if errors else "invalid attributes"
        super().__init__(f"Invalid attributes for {resource_type}: {detail}")


class SynthesisError(PangeaError):
    pass


class UnknownResourceTypeError(PangeaError, KeyError):
    def __init__(self, resource_type: str) -> None:
        self.resource_type = resource_type
        super().__init__(resource_type)

    def __str__(self) -> str:
        return f"No builder registered for resource type '{self.resource_type}'"


class ManifestError(PangeaError):
    pass
