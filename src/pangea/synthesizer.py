from __future__ import annotations

import copy
import json
import logging
from typing import TYPE_CHECKING, Any

from pangea.errors import SynthesisError
from pangea.resources.registry import get_builder

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference

logger = logging.getLogger(__name__)

_BLOCK_ORDER = ("terraform", "provider", "variable", "resource", "output")


class TerraformSynthesizer:
    """Accumulates Terraform declarations and renders them as Terraform JSON."""

    def __init__(self) -> None:
        self._terraform: dict[str, Any] = {}
        self._providers: dict[str, dict[str, Any]] = {}
        self._variables: dict[str, dict[str, Any]] = {}
        self._resources: dict[str, dict[str, dict[str, Any]]] = {}
        self._outputs: dict[str, dict[str, Any]] = {}
        self.references: dict[str, ResourceReference] = {}

    def resource(self, resource_type: str, name: str, body: dict[str, Any]) -> None:
        instances = self._resources.setdefault(resource_type, {})
        if name in instances:
            raise SynthesisError(f"Resource {resource_type}.{name} is already declared")
        instances[name] = body
        logger.debug("Declared resource %s.%s", resource_type, name)

    def track(self, reference: ResourceReference) -> ResourceReference:
        self.references[reference.address] = reference
        return reference

    def declare(
        self,
        resource_type: str,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> ResourceReference:
        builder = get_builder(resource_type)
        return builder(self, name, attributes)

    def output(
        self,
        name: str,
        value: Any,
        description: str | None = None,
        sensitive: bool = False,
    ) -> None:
        if name in self._outputs:
            raise SynthesisError(f"Output '{name}' is already declared")
        block: dict[str, Any] = {"value": value}
        if description:
            block["description"] = description
        if sensitive:
            block["sensitive"] = True
        self._outputs[name] = block

    def provider(self, name: str, **configuration: Any) -> None:
        if name in self._providers:
            raise SynthesisError(f"Provider '{name}' is already declared")
        self._providers[name] = configuration

    def variable(self, name: str, **configuration: Any) -> None:
        if name in self._variables:
            raise SynthesisError(f"Variable '{name}' is already declared")
        self._variables[name] = configuration

    def terraform(
        self,
        required_version: str | None = None,
        required_providers: dict[str, dict[str, str]] | None = None,
    ) -> None:
        if required_version:
            self._terraform["required_version"] = required_version
        if required_providers:
            self._terraform.setdefault("required_providers", {}).update(required_providers)

    @property
    def resource_count(self) -> int:
        return sum(len(instances) for instances in self._resources.values())

    def resources(self) -> list[tuple[str, str, dict[str, Any]]]:
        return [
            (resource_type, name, copy.deepcopy(body))
            for resource_type, instances in self._resources.items()
            for name, body in instances.items()
        ]

    @property
    def synthesis(self) -> dict[str, Any]:
        blocks = {
            "terraform": self._terraform,
            "provider": self._providers,
            "variable": self._variables,
            "resource": self._resources,
            "output": self._outputs,
        }
        return {key: copy.deepcopy(blocks[key]) for key in _BLOCK_ORDER if blocks[key]}

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.synthesis, indent=indent)
