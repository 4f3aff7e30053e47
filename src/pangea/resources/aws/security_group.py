from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, field_validator, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags, Port, validate_cidr

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

NAMED_PROTOCOLS = {"tcp", "udp", "icmp", "icmpv6", "all", "-1"}
REQUIRED_RULE_FIELDS = ("from_port", "to_port", "protocol")


class SecurityGroupRule(AttributeBlock):
    from_port: Port
    to_port: Port
    protocol: str
    cidr_blocks: list[str] = Field(default_factory=list)
    ipv6_cidr_blocks: list[str] = Field(default_factory=list)
    prefix_list_ids: list[str] = Field(default_factory=list)
    security_groups: list[str] = Field(default_factory=list)
    self_: bool = Field(default=False, alias="self")
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _check_required_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            missing = [key for key in REQUIRED_RULE_FIELDS if key not in data]
            if missing:
                raise ValueError(
                    f"Security group rule is missing required fields: {', '.join(missing)}"
                )
        return data

    @field_validator("protocol")
    @classmethod
    def _check_protocol(cls, value: str) -> str:
        normalized = value.lower()
        if normalized in NAMED_PROTOCOLS:
            return normalized
        if normalized.isdigit() and 0 <= int(normalized) <= 255:
            return normalized
        raise ValueError(f"protocol '{value}' is not valid")

    @field_validator("cidr_blocks")
    @classmethod
    def _check_cidr_blocks(cls, value: list[str]) -> list[str]:
        return [validate_cidr(cidr) for cidr in value]

    @model_validator(mode="after")
    def _check_port_range(self) -> Self:
        if self.from_port > self.to_port:
            raise ValueError(
                f"from_port ({self.from_port}) cannot be greater than to_port ({self.to_port})"
            )
        return self

    @property
    def allows_all_traffic(self) -> bool:
        return self.protocol in {"all", "-1"}

    @property
    def is_open_to_world(self) -> bool:
        return "0.0.0.0/0" in self.cidr_blocks or "::/0" in self.ipv6_cidr_blocks

    def to_terraform(self) -> dict[str, Any]:
        # Terraform JSON requires every field of these attribute-as-block entries.
        return {
            "from_port": self.from_port,
            "to_port": self.to_port,
            "protocol": self.protocol,
            "cidr_blocks": self.cidr_blocks,
            "ipv6_cidr_blocks": self.ipv6_cidr_blocks,
            "prefix_list_ids": self.prefix_list_ids,
            "security_groups": self.security_groups,
            "self": self.self_,
            "description": self.description,
        }


class SecurityGroupAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_security_group"

    name: str | None = None
    name_prefix: str | None = None
    description: str | None = None
    vpc_id: str | None = None
    ingress_rules: list[SecurityGroupRule] = Field(default_factory=list)
    egress_rules: list[SecurityGroupRule] = Field(default_factory=list)
    revoke_rules_on_delete: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_name_exclusivity(self) -> Self:
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        return self

    @property
    def ingress_rule_count(self) -> int:
        return len(self.ingress_rules)

    @property
    def egress_rule_count(self) -> int:
        return len(self.egress_rules)

    @property
    def allows_public_ingress(self) -> bool:
        return any(rule.is_open_to_world for rule in self.ingress_rules)

    def reference_attributes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, by_alias=True)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "name_prefix": self.name_prefix,
                "description": self.description,
                "vpc_id": self.vpc_id,
                "ingress": [rule.to_terraform() for rule in self.ingress_rules],
                "egress": [rule.to_terraform() for rule in self.egress_rules],
                "revoke_rules_on_delete": self.revoke_rules_on_delete or None,
                "tags": self.tags,
            }
        )


@register("aws_security_group")
def aws_security_group(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        SecurityGroupAttributes,
        name,
        attributes,
        outputs=("id", "arn", "name", "description", "vpc_id", "owner_id"),
        computed=("ingress_rule_count", "egress_rule_count", "allows_public_ingress"),
    )
