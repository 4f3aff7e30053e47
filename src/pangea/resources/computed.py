"""Derived facts about declared resources, read from a reference's attributes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pangea.resources.aws.vpc import AWS_RESERVED_ADDRESSES_PER_SUBNET, is_rfc1918, prefix_length
from pangea.resources.reference import ResourceReference


@dataclass(frozen=True)
class ComputedAttributes:
    reference: ResourceReference

    def _attribute(self, name: str, default: Any = None) -> Any:
        return self.reference.resource_attributes.get(name, default)


class VpcComputedAttributes(ComputedAttributes):
    @property
    def is_private_cidr(self) -> bool:
        return is_rfc1918(self._attribute("cidr_block"))

    @property
    def estimated_subnet_capacity(self) -> int:
        size = prefix_length(self._attribute("cidr_block"))
        return 2 ** (24 - size) if size <= 24 else 0


class SubnetComputedAttributes(ComputedAttributes):
    @property
    def is_public(self) -> bool:
        return bool(self._attribute("map_public_ip_on_launch", False))

    @property
    def is_private(self) -> bool:
        return not self.is_public

    @property
    def subnet_type(self) -> str:
        return "public" if self.is_public else "private"

    @property
    def ip_capacity(self) -> int:
        size = prefix_length(self._attribute("cidr_block"))
        return 2 ** (32 - size) - AWS_RESERVED_ADDRESSES_PER_SUBNET


class InstanceComputedAttributes(ComputedAttributes):
    @property
    def will_have_public_ip(self) -> bool:
        explicit = self._attribute("associate_public_ip_address")
        if explicit is not None:
            return bool(explicit)
        # Without an explicit setting, fall back to the subnet's naming.
        return "public" in (self._attribute("subnet_id") or "")

    @property
    def compute_family(self) -> str:
        return self._attribute("instance_type", "").split(".")[0]

    @property
    def compute_size(self) -> str:
        return self._attribute("instance_type", "").split(".")[-1]
