from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_MISSING = object()


@dataclass
class ResourceReference:
    """Handle to a declared resource.

    Output attributes resolve to Terraform interpolation strings. Computed
    properties are derived from the validated attributes, evaluated on first
    access and cached for the lifetime of the reference.
    """

    type: str
    name: str
    resource_attributes: dict[str, Any] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    computed_properties: dict[str, Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _computed_cache: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def ref(self, attribute: str) -> str:
        return self.outputs.get(attribute, f"${{{self.type}.{self.name}.{attribute}}}")

    def computed(self, name: str) -> Any:
        cached = self._computed_cache.get(name, _MISSING)
        if cached is not _MISSING:
            return cached
        try:
            compute = self.computed_properties[name]
        except KeyError:
            raise AttributeError(f"{self.address} has no computed property '{name}'") from None
        value = compute()
        self._computed_cache[name] = value
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "attributes": self.resource_attributes,
            "outputs": self.outputs,
        }

    def __getattr__(self, item: str) -> Any:
        if item.startswith("_"):
            raise AttributeError(item)
        outputs = self.__dict__.get("outputs", {})
        if item in outputs:
            return outputs[item]
        if item in self.__dict__.get("computed_properties", {}):
            return self.computed(item)
        raise AttributeError(f"{type(self).__name__} '{self.address}' has no attribute '{item}'")
