from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import partial
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationError
from typing_extensions import Self

from pangea.errors import AttributeValidationError
from pangea.resources.emit import output_map
from pangea.resources.reference import ResourceReference

if TYPE_CHECKING:
    from pangea.synthesizer import TerraformSynthesizer

logger = logging.getLogger(__name__)

_PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "


class AttributeBlock(BaseModel):
    """Nested configuration block of a resource (health check, rule, statement, ...)."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResourceAttributes(AttributeBlock):
    """Validated attribute set of a single Terraform resource.

    Subclasses declare fields with their constraints and defaults, add
    ``model_validator`` hooks for rules spanning several fields, and implement
    ``to_terraform`` to produce the resource block body.
    """

    resource_type: ClassVar[str] = "resource"

    @classmethod
    def build(cls, attributes: Mapping[str, Any] | None = None) -> Self:
        try:
            return cls.model_validate(dict(attributes or {}))
        except ValidationError as e:
            errors = format_validation_errors(e)
            logger.debug("Rejected %s attributes: %s", cls.resource_type, errors)
            raise AttributeValidationError(cls.resource_type, errors) from e

    def to_terraform(self) -> dict[str, Any]:
        raise NotImplementedError

    def reference_attributes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def format_validation_errors(error: ValidationError) -> list[str]:
    messages: list[str] = []
    for item in error.errors():
        msg = item["msg"]
        if msg.startswith(_PYDANTIC_VALUE_ERROR_PREFIX):
            msg = msg[len(_PYDANTIC_VALUE_ERROR_PREFIX) :]
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {msg}" if location else msg)
    return messages


def declare_resource(
    synth: TerraformSynthesizer,
    attributes_cls: type[ResourceAttributes],
    name: str,
    attributes: Mapping[str, Any] | None,
    outputs: tuple[str, ...],
    computed: tuple[str, ...] = (),
) -> ResourceReference:
    attrs = attributes_cls.build(attributes)
    resource_type = attributes_cls.resource_type
    synth.resource(resource_type, name, attrs.to_terraform())
    reference = ResourceReference(
        type=resource_type,
        name=name,
        resource_attributes=attrs.reference_attributes(),
        outputs=output_map(resource_type, name, outputs),
        computed_properties={prop: partial(getattr, attrs, prop) for prop in computed},
    )
    return synth.track(reference)
