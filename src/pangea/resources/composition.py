from __future__ import annotations

import ipaddress
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pangea.resources.aws.vpc import (
    aws_internet_gateway,
    aws_nat_gateway,
    aws_route_table,
    aws_subnet,
    aws_vpc,
)

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_ROUTE = "0.0.0.0/0"


@dataclass
class CompositeVpcReference:
    """References to every resource created by :func:`vpc_with_subnets`."""

    name_prefix: str
    vpc: ResourceReference | None = None
    internet_gateway: ResourceReference | None = None
    public_subnets: list[ResourceReference] = field(default_factory=list)
    private_subnets: list[ResourceReference] = field(default_factory=list)
    nat_gateways: list[ResourceReference] = field(default_factory=list)
    public_route_table: ResourceReference | None = None
    private_route_tables: list[ResourceReference] = field(default_factory=list)

    @property
    def public_subnet_ids(self) -> list[str]:
        return [subnet.id for subnet in self.public_subnets]

    @property
    def private_subnet_ids(self) -> list[str]:
        return [subnet.id for subnet in self.private_subnets]

    @property
    def availability_zone_count(self) -> int:
        return len(self.public_subnets)

    def all_resources(self) -> list[ResourceReference]:
        singles = [self.vpc, self.internet_gateway]
        resources = [ref for ref in singles if ref is not None]
        resources.extend(self.public_subnets)
        resources.extend(self.private_subnets)
        resources.extend(self.nat_gateways)
        if self.public_route_table is not None:
            resources.append(self.public_route_table)
        resources.extend(self.private_route_tables)
        return resources


def carve_subnets(vpc_cidr: str, count: int) -> list[str]:
    """Split ``vpc_cidr`` into the smallest power-of-two set of equal subnets holding ``count``."""
    network = ipaddress.IPv4Network(vpc_cidr)
    extra_bits = math.ceil(math.log2(count)) if count > 1 else 0
    subnets = network.subnets(prefixlen_diff=extra_bits)
    return [str(subnet) for _, subnet in zip(range(count), subnets)]


def _tags(base: dict[str, str], extra: dict[str, str] | None) -> dict[str, str]:
    return {**base, **(extra or {})}


def vpc_with_subnets(
    synth: TerraformSynthesizer,
    name_prefix: str,
    vpc_cidr: str,
    availability_zones: Sequence[str],
    public_subnet_cidrs: Sequence[str] | None = None,
    private_subnet_cidrs: Sequence[str] | None = None,
    attributes: dict[str, Any] | None = None,
) -> CompositeVpcReference:
    if not availability_zones:
        raise ValueError("At least one availability zone must be specified")

    attributes = attributes or {}
    zone_count = len(availability_zones)
    carved = carve_subnets(vpc_cidr, zone_count * 2)
    public_cidrs = list(public_subnet_cidrs or [])
    private_cidrs = list(private_subnet_cidrs or [])

    result = CompositeVpcReference(name_prefix)
    result.vpc = aws_vpc(
        synth,
        f"{name_prefix}_vpc",
        {
            "cidr_block": vpc_cidr,
            "enable_dns_hostnames": True,
            "enable_dns_support": True,
            "tags": _tags({"Name": f"{name_prefix}-vpc"}, attributes.get("vpc_tags")),
        },
    )
    result.internet_gateway = aws_internet_gateway(
        synth,
        f"{name_prefix}_igw",
        {
            "vpc_id": result.vpc.id,
            "tags": _tags({"Name": f"{name_prefix}-igw"}, attributes.get("igw_tags")),
        },
    )

    for index, zone in enumerate(availability_zones):
        public_cidr = public_cidrs[index] if index < len(public_cidrs) else carved[index]
        result.public_subnets.append(
            aws_subnet(
                synth,
                f"{name_prefix}_public_subnet_{index}",
                {
                    "vpc_id": result.vpc.id,
                    "cidr_block": public_cidr,
                    "availability_zone": zone,
                    "map_public_ip_on_launch": True,
                    "tags": _tags(
                        {"Name": f"{name_prefix}-public-{index}", "Type": "public"},
                        attributes.get("public_subnet_tags"),
                    ),
                },
            )
        )
        private_cidr = (
            private_cidrs[index] if index < len(private_cidrs) else carved[index + zone_count]
        )
        result.private_subnets.append(
            aws_subnet(
                synth,
                f"{name_prefix}_private_subnet_{index}",
                {
                    "vpc_id": result.vpc.id,
                    "cidr_block": private_cidr,
                    "availability_zone": zone,
                    "map_public_ip_on_launch": False,
                    "tags": _tags(
                        {"Name": f"{name_prefix}-private-{index}", "Type": "private"},
                        attributes.get("private_subnet_tags"),
                    ),
                },
            )
        )

    for index, subnet in enumerate(result.public_subnets):
        result.nat_gateways.append(
            aws_nat_gateway(
                synth,
                f"{name_prefix}_nat_{index}",
                {
                    "subnet_id": subnet.id,
                    "tags": _tags({"Name": f"{name_prefix}-nat-{index}"}, attributes.get("nat_tags")),
                },
            )
        )

    route_table_tags = attributes.get("route_table_tags")
    result.public_route_table = aws_route_table(
        synth,
        f"{name_prefix}_public_rt",
        {
            "vpc_id": result.vpc.id,
            "routes": [{"cidr_block": DEFAULT_ROUTE, "gateway_id": result.internet_gateway.id}],
            "tags": _tags({"Name": f"{name_prefix}-public-rt"}, route_table_tags),
        },
    )
    for index, nat_gateway in enumerate(result.nat_gateways):
        result.private_route_tables.append(
            aws_route_table(
                synth,
                f"{name_prefix}_private_rt_{index}",
                {
                    "vpc_id": result.vpc.id,
                    "routes": [{"cidr_block": DEFAULT_ROUTE, "nat_gateway_id": nat_gateway.id}],
                    "tags": _tags({"Name": f"{name_prefix}-private-rt-{index}"}, route_table_tags),
                },
            )
        )

    logger.debug(
        "Composed VPC %s across %d availability zones (%d resources)",
        name_prefix,
        zone_count,
        len(result.all_resources()),
    )
    return result
