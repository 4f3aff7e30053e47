from __future__ import annotations

import ipaddress
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags, CidrBlock, LiteralCidrBlock

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

MIN_PREFIX_LENGTH = 16
MAX_PREFIX_LENGTH = 28
AWS_RESERVED_ADDRESSES_PER_SUBNET = 5

RFC1918_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)


def prefix_length(cidr_block: str) -> int:
    return ipaddress.IPv4Network(cidr_block).prefixlen


def is_rfc1918(cidr_block: str) -> bool:
    network = ipaddress.IPv4Network(cidr_block)
    return any(network.subnet_of(private) for private in RFC1918_NETWORKS)


class VpcAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_vpc"

    cidr_block: LiteralCidrBlock
    enable_dns_hostnames: bool = True
    enable_dns_support: bool = True
    instance_tenancy: Literal["default", "dedicated", "host"] = "default"
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_cidr_size(self) -> Self:
        size = prefix_length(self.cidr_block)
        if size < MIN_PREFIX_LENGTH:
            raise ValueError(
                f"VPC CIDR block {self.cidr_block} is too large (</{MIN_PREFIX_LENGTH}). "
                f"AWS VPCs support /{MIN_PREFIX_LENGTH} to /{MAX_PREFIX_LENGTH}"
            )
        if size > MAX_PREFIX_LENGTH:
            raise ValueError(
                f"VPC CIDR block {self.cidr_block} is too small (>/{MAX_PREFIX_LENGTH}). "
                f"AWS VPCs support /{MIN_PREFIX_LENGTH} to /{MAX_PREFIX_LENGTH}"
            )
        return self

    @property
    def is_private_cidr(self) -> bool:
        return is_rfc1918(self.cidr_block)

    @property
    def estimated_subnet_capacity(self) -> int:
        size = prefix_length(self.cidr_block)
        return 2 ** (24 - size) if size <= 24 else 0

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "cidr_block": self.cidr_block,
                "enable_dns_hostnames": self.enable_dns_hostnames,
                "enable_dns_support": self.enable_dns_support,
                "instance_tenancy": (
                    self.instance_tenancy if self.instance_tenancy != "default" else None
                ),
                "tags": self.tags,
            }
        )


class SubnetAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_subnet"

    vpc_id: str
    cidr_block: LiteralCidrBlock
    availability_zone: str
    map_public_ip_on_launch: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_cidr_size(self) -> Self:
        size = prefix_length(self.cidr_block)
        if not MIN_PREFIX_LENGTH <= size <= MAX_PREFIX_LENGTH:
            raise ValueError(
                f"Subnet CIDR block {self.cidr_block} must be between "
                f"/{MIN_PREFIX_LENGTH} and /{MAX_PREFIX_LENGTH}"
            )
        return self

    @property
    def is_public(self) -> bool:
        return self.map_public_ip_on_launch

    @property
    def subnet_type(self) -> str:
        return "public" if self.map_public_ip_on_launch else "private"

    @property
    def ip_capacity(self) -> int:
        return 2 ** (32 - prefix_length(self.cidr_block)) - AWS_RESERVED_ADDRESSES_PER_SUBNET

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "vpc_id": self.vpc_id,
                "cidr_block": self.cidr_block,
                "availability_zone": self.availability_zone,
                "map_public_ip_on_launch": self.map_public_ip_on_launch,
                "tags": self.tags,
            }
        )


class InternetGatewayAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_internet_gateway"

    vpc_id: str | None = None
    tags: AwsTags = Field(default_factory=dict)

    def to_terraform(self) -> dict[str, Any]:
        return prune({"vpc_id": self.vpc_id, "tags": self.tags})


class NatGatewayAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_nat_gateway"

    subnet_id: str
    allocation_id: str | None = None
    connectivity_type: Literal["public", "private"] = "public"
    private_ip: str | None = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_connectivity(self) -> Self:
        if self.connectivity_type == "private" and self.allocation_id:
            raise ValueError("allocation_id cannot be set for a private NAT gateway")
        return self

    @property
    def is_public(self) -> bool:
        return self.connectivity_type == "public"

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "subnet_id": self.subnet_id,
                "allocation_id": self.allocation_id,
                "connectivity_type": (
                    self.connectivity_type if self.connectivity_type != "public" else None
                ),
                "private_ip": self.private_ip,
                "tags": self.tags,
            }
        )


ROUTE_TARGETS = (
    "gateway_id",
    "nat_gateway_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
    "network_interface_id",
    "vpc_endpoint_id",
)


class Route(AttributeBlock):
    cidr_block: CidrBlock | None = None
    ipv6_cidr_block: str | None = None
    gateway_id: str | None = None
    nat_gateway_id: str | None = None
    transit_gateway_id: str | None = None
    vpc_peering_connection_id: str | None = None
    network_interface_id: str | None = None
    vpc_endpoint_id: str | None = None

    @model_validator(mode="after")
    def _check_destination_and_target(self) -> Self:
        if (self.cidr_block is None) == (self.ipv6_cidr_block is None):
            raise ValueError("Route must specify exactly one of cidr_block or ipv6_cidr_block")
        targets = [target for target in ROUTE_TARGETS if getattr(self, target) is not None]
        if len(targets) != 1:
            raise ValueError(
                f"Route must specify exactly one target ({', '.join(ROUTE_TARGETS)}), "
                f"got: {', '.join(targets) or 'none'}"
            )
        return self

    def to_terraform(self) -> dict[str, Any]:
        # Same attribute-as-block rule as security group rules: every key present.
        body = {"cidr_block": self.cidr_block, "ipv6_cidr_block": self.ipv6_cidr_block}
        body.update({target: getattr(self, target) for target in ROUTE_TARGETS})
        return body


class RouteTableAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_route_table"

    vpc_id: str
    routes: list[Route] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @property
    def has_internet_route(self) -> bool:
        return any(
            route.gateway_id is not None and route.cidr_block == "0.0.0.0/0"
            for route in self.routes
        )

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "vpc_id": self.vpc_id,
                "route": [route.to_terraform() for route in self.routes],
                "tags": self.tags,
            }
        )


@register("aws_vpc")
def aws_vpc(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        VpcAttributes,
        name,
        attributes,
        outputs=(
            "id",
            "arn",
            "cidr_block",
            "default_security_group_id",
            "default_route_table_id",
            "default_network_acl_id",
            "main_route_table_id",
            "owner_id",
        ),
        computed=("is_private_cidr", "estimated_subnet_capacity"),
    )


@register("aws_subnet")
def aws_subnet(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        SubnetAttributes,
        name,
        attributes,
        outputs=("id", "arn", "availability_zone", "availability_zone_id", "cidr_block", "vpc_id"),
        computed=("is_public", "subnet_type", "ip_capacity"),
    )


@register("aws_internet_gateway")
def aws_internet_gateway(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        InternetGatewayAttributes,
        name,
        attributes,
        outputs=("id", "arn", "owner_id", "vpc_id"),
    )


@register("aws_nat_gateway")
def aws_nat_gateway(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        NatGatewayAttributes,
        name,
        attributes,
        outputs=("id", "allocation_id", "network_interface_id", "private_ip", "public_ip"),
        computed=("is_public",),
    )


@register("aws_route_table")
def aws_route_table(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        RouteTableAttributes,
        name,
        attributes,
        outputs=("id", "arn", "owner_id"),
        computed=("has_internet_route",),
    )
