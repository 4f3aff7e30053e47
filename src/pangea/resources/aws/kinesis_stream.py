from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags, KmsKeyId

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

ShardLevelMetric = Literal[
    "IncomingRecords",
    "IncomingBytes",
    "OutgoingRecords",
    "OutgoingBytes",
    "WriteProvisionedThroughputExceeded",
    "ReadProvisionedThroughputExceeded",
    "IteratorAgeMilliseconds",
    "ALL",
]

MAX_THROUGHPUT_PER_SHARD_MBPS = 1.0
MAX_RECORDS_PER_SHARD = 1000
SHARD_HOUR_COST_USD = 0.015
EXTENDED_RETENTION_DAY_COST_USD = 0.023
HOURS_PER_MONTH = 24 * 30


class StreamModeDetails(AttributeBlock):
    stream_mode: Literal["PROVISIONED", "ON_DEMAND"] = "PROVISIONED"


class KinesisStreamAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_kinesis_stream"

    name: str = Field(min_length=1, max_length=128)
    shard_count: int = Field(default=1, ge=1, le=500000)
    retention_period: int = Field(default=24, ge=24, le=8760)
    shard_level_metrics: list[ShardLevelMetric] = Field(default_factory=list)
    encryption_type: Literal["NONE", "KMS"] = "NONE"
    kms_key_id: KmsKeyId | None = None
    stream_mode_details: StreamModeDetails = Field(default_factory=StreamModeDetails)
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_stream(self) -> Self:
        if self.encryption_type == "KMS" and not self.kms_key_id:
            raise ValueError("KMS key ID is required when encryption_type is 'KMS'")
        if self.is_on_demand_mode and self.shard_count != 1:
            raise ValueError("Cannot specify shard_count with ON_DEMAND stream mode")
        return self

    @property
    def is_encrypted(self) -> bool:
        return self.encryption_type == "KMS"

    @property
    def is_on_demand_mode(self) -> bool:
        return self.stream_mode_details.stream_mode == "ON_DEMAND"

    @property
    def is_provisioned_mode(self) -> bool:
        return not self.is_on_demand_mode

    @property
    def has_enhanced_metrics(self) -> bool:
        return bool(self.shard_level_metrics)

    @property
    def max_throughput_per_shard_mbps(self) -> float:
        return MAX_THROUGHPUT_PER_SHARD_MBPS

    @property
    def max_throughput_per_shard_records(self) -> int:
        return MAX_RECORDS_PER_SHARD

    @property
    def total_max_throughput_mbps(self) -> float | None:
        # On-demand streams scale automatically.
        if self.is_on_demand_mode:
            return None
        return self.shard_count * MAX_THROUGHPUT_PER_SHARD_MBPS

    @property
    def total_max_throughput_records(self) -> int | None:
        if self.is_on_demand_mode:
            return None
        return self.shard_count * MAX_RECORDS_PER_SHARD

    @property
    def retention_period_days(self) -> int:
        return self.retention_period // 24

    @property
    def estimated_monthly_cost_usd(self) -> float | None:
        """Provisioned shard-hour cost plus extended retention; None for on-demand streams."""
        if self.is_on_demand_mode:
            return None
        cost = self.shard_count * HOURS_PER_MONTH * SHARD_HOUR_COST_USD
        if self.retention_period > 24:
            extended_days = (self.retention_period - 24) / 24.0
            cost += self.shard_count * extended_days * EXTENDED_RETENTION_DAY_COST_USD
        return round(cost, 2)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "shard_count": self.shard_count if self.is_provisioned_mode else None,
                "retention_period": self.retention_period,
                "shard_level_metrics": self.shard_level_metrics,
                "encryption_type": self.encryption_type,
                "kms_key_id": self.kms_key_id,
                "stream_mode_details": {"stream_mode": self.stream_mode_details.stream_mode},
                "tags": self.tags,
            }
        )


@register("aws_kinesis_stream")
def aws_kinesis_stream(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        KinesisStreamAttributes,
        name,
        attributes,
        outputs=("id", "arn", "name", "shard_count"),
        computed=(
            "is_encrypted",
            "is_on_demand_mode",
            "is_provisioned_mode",
            "has_enhanced_metrics",
            "max_throughput_per_shard_mbps",
            "max_throughput_per_shard_records",
            "total_max_throughput_mbps",
            "total_max_throughput_records",
            "retention_period_days",
            "estimated_monthly_cost_usd",
        ),
    )
