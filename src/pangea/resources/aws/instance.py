from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags, EbsVolumeType

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

# On-demand Linux prices in us-east-1 (USD/hour).
HOURLY_COSTS: dict[str, float] = {
    "t3.micro": 0.0104,
    "t3.small": 0.0208,
    "t3.medium": 0.0416,
    "t3.large": 0.0832,
    "t3.xlarge": 0.1664,
    "m5.large": 0.096,
    "m5.xlarge": 0.192,
    "m5.2xlarge": 0.384,
    "c5.large": 0.085,
    "c5.xlarge": 0.17,
    "r5.large": 0.126,
    "r5.xlarge": 0.252,
}
DEFAULT_HOURLY_COST = 0.10
BURSTABLE_FAMILIES = {"t2", "t3"}
PROVISIONED_IOPS_VOLUME_TYPES = {"io1", "io2"}


class BlockDevice(AttributeBlock):
    volume_type: EbsVolumeType | None = None
    volume_size: int | None = Field(default=None, ge=1, le=65536)
    iops: int | None = None
    throughput: int | None = None
    delete_on_termination: bool | None = None
    encrypted: bool | None = None
    kms_key_id: str | None = None

    @model_validator(mode="after")
    def _check_performance_settings(self) -> Self:
        if self.iops is not None and self.volume_type not in PROVISIONED_IOPS_VOLUME_TYPES:
            raise ValueError("IOPS can only be specified for io1 or io2 volume types")
        if self.throughput is not None and self.volume_type != "gp3":
            raise ValueError("Throughput can only be specified for gp3 volume type")
        return self


class EbsBlockDevice(BlockDevice):
    device_name: str
    snapshot_id: str | None = None


class InstanceAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_instance"

    ami: str
    instance_type: str
    subnet_id: str | None = None
    vpc_security_group_ids: list[str] = Field(default_factory=list)
    availability_zone: str | None = None
    associate_public_ip_address: bool | None = None
    key_name: str | None = None
    user_data: str | None = None
    user_data_base64: str | None = None
    iam_instance_profile: str | None = None
    root_block_device: BlockDevice | None = None
    ebs_block_device: list[EbsBlockDevice] = Field(default_factory=list)
    instance_initiated_shutdown_behavior: Literal["stop", "terminate"] | None = None
    monitoring: bool = False
    ebs_optimized: bool = False
    source_dest_check: bool | None = None
    disable_api_termination: bool = False
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_user_data(self) -> Self:
        if self.user_data and self.user_data_base64:
            raise ValueError("Cannot specify both 'user_data' and 'user_data_base64'")
        return self

    @property
    def compute_family(self) -> str:
        return self.instance_type.split(".")[0]

    @property
    def compute_size(self) -> str:
        return self.instance_type.split(".")[-1]

    @property
    def supports_ebs_optimization(self) -> bool:
        return self.compute_family not in BURSTABLE_FAMILIES

    @property
    def will_have_public_ip(self) -> bool | None:
        return self.associate_public_ip_address

    @property
    def estimated_hourly_cost(self) -> float:
        return HOURLY_COSTS.get(self.instance_type, DEFAULT_HOURLY_COST)

    @property
    def estimated_monthly_cost(self) -> float:
        return round(self.estimated_hourly_cost * 730, 2)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "ami": self.ami,
                "instance_type": self.instance_type,
                "subnet_id": self.subnet_id,
                "vpc_security_group_ids": self.vpc_security_group_ids,
                "availability_zone": self.availability_zone,
                "associate_public_ip_address": self.associate_public_ip_address,
                "key_name": self.key_name,
                "user_data": self.user_data,
                "user_data_base64": self.user_data_base64,
                "iam_instance_profile": self.iam_instance_profile,
                "root_block_device": (
                    self.root_block_device.model_dump(exclude_none=True)
                    if self.root_block_device
                    else None
                ),
                "ebs_block_device": [
                    device.model_dump(exclude_none=True) for device in self.ebs_block_device
                ],
                "instance_initiated_shutdown_behavior": self.instance_initiated_shutdown_behavior,
                "monitoring": self.monitoring or None,
                "ebs_optimized": self.ebs_optimized or None,
                "source_dest_check": self.source_dest_check,
                "disable_api_termination": self.disable_api_termination or None,
                "tags": self.tags,
            }
        )


@register("aws_instance")
def aws_instance(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        InstanceAttributes,
        name,
        attributes,
        outputs=(
            "id",
            "arn",
            "availability_zone",
            "instance_state",
            "private_dns",
            "private_ip",
            "public_dns",
            "public_ip",
            "primary_network_interface_id",
        ),
        computed=(
            "compute_family",
            "compute_size",
            "supports_ebs_optimization",
            "will_have_public_ip",
            "estimated_hourly_cost",
            "estimated_monthly_cost",
        ),
    )
