from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import ConfigDict, Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import policy_json, prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

FIFO_SUFFIX = ".fifo"


class PolicyBlock(AttributeBlock):
    """Queue policy document; AWS spells its keys in camelCase."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    def to_json(self) -> str:
        return policy_json(self.model_dump(by_alias=True, exclude_none=True))


class RedrivePolicy(PolicyBlock):
    dead_letter_target_arn: str = Field(alias="deadLetterTargetArn")
    max_receive_count: int = Field(default=3, ge=1, le=1000, alias="maxReceiveCount")


class RedriveAllowPolicy(PolicyBlock):
    redrive_permission: Literal["allowAll", "denyAll", "byQueue"] = Field(
        default="allowAll", alias="redrivePermission"
    )
    source_queue_arns: list[str] | None = Field(default=None, alias="sourceQueueArns")

    @model_validator(mode="after")
    def _check_sources(self) -> Self:
        if self.redrive_permission == "byQueue" and not self.source_queue_arns:
            raise ValueError("sourceQueueArns must be specified when redrivePermission is 'byQueue'")
        return self


class SqsQueueAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_sqs_queue"

    name: str = Field(min_length=1, max_length=80)
    fifo_queue: bool = False
    content_based_deduplication: bool = False
    visibility_timeout_seconds: int = Field(default=30, ge=0, le=43200)
    message_retention_seconds: int = Field(default=345600, ge=60, le=1209600)
    max_message_size: int = Field(default=262144, ge=1024, le=262144)
    delay_seconds: int = Field(default=0, ge=0, le=900)
    receive_wait_time_seconds: int = Field(default=0, ge=0, le=20)
    redrive_policy: RedrivePolicy | None = None
    redrive_allow_policy: RedriveAllowPolicy | None = None
    kms_master_key_id: str | None = None
    kms_data_key_reuse_period_seconds: int = Field(default=300, ge=60, le=86400)
    sqs_managed_sse_enabled: bool = False
    deduplication_scope: Literal["messageGroup", "queue"] = "queue"
    fifo_throughput_limit: Literal["perMessageGroupId", "perQueue"] = "perQueue"
    policy: str | None = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_queue_type(self) -> Self:
        if self.fifo_queue and not self.name.endswith(FIFO_SUFFIX):
            raise ValueError("FIFO queue names must end with '.fifo' suffix")
        if not self.fifo_queue and self.name.endswith(FIFO_SUFFIX):
            raise ValueError("Standard queue names cannot end with '.fifo' suffix")
        if not self.fifo_queue:
            if self.content_based_deduplication:
                raise ValueError("content_based_deduplication is only valid for FIFO queues")
            if self.deduplication_scope != "queue":
                raise ValueError("deduplication_scope is only valid for FIFO queues")
            if self.fifo_throughput_limit != "perQueue":
                raise ValueError("fifo_throughput_limit is only valid for FIFO queues")
        if self.kms_master_key_id and self.sqs_managed_sse_enabled:
            raise ValueError(
                "Cannot enable both KMS encryption and SQS managed server-side encryption"
            )
        return self

    @property
    def is_fifo(self) -> bool:
        return self.fifo_queue

    @property
    def is_encrypted(self) -> bool:
        return bool(self.kms_master_key_id) or self.sqs_managed_sse_enabled

    @property
    def has_dlq(self) -> bool:
        return self.redrive_policy is not None

    @property
    def long_polling_enabled(self) -> bool:
        return self.receive_wait_time_seconds > 0

    @property
    def is_delay_queue(self) -> bool:
        return self.delay_seconds > 0

    @property
    def allows_all_sources(self) -> bool:
        return (
            self.redrive_allow_policy is None
            or self.redrive_allow_policy.redrive_permission == "allowAll"
        )

    @property
    def queue_type(self) -> str:
        return "FIFO" if self.fifo_queue else "Standard"

    @property
    def encryption_type(self) -> str:
        if self.kms_master_key_id:
            return "KMS"
        if self.sqs_managed_sse_enabled:
            return "SQS-SSE"
        return "None"

    def reference_attributes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, by_alias=True)

    def to_terraform(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "name": self.name,
            "fifo_queue": self.fifo_queue,
            "visibility_timeout_seconds": self.visibility_timeout_seconds,
            "message_retention_seconds": self.message_retention_seconds,
            "max_message_size": self.max_message_size,
            "delay_seconds": self.delay_seconds,
            "receive_wait_time_seconds": self.receive_wait_time_seconds,
        }
        if self.fifo_queue:
            body["content_based_deduplication"] = self.content_based_deduplication
            body["deduplication_scope"] = self.deduplication_scope
            body["fifo_throughput_limit"] = self.fifo_throughput_limit
        if self.kms_master_key_id:
            body["kms_master_key_id"] = self.kms_master_key_id
            body["kms_data_key_reuse_period_seconds"] = self.kms_data_key_reuse_period_seconds
        elif self.sqs_managed_sse_enabled:
            body["sqs_managed_sse_enabled"] = True
        body.update(
            {
                "redrive_policy": self.redrive_policy.to_json() if self.redrive_policy else None,
                "redrive_allow_policy": (
                    self.redrive_allow_policy.to_json() if self.redrive_allow_policy else None
                ),
                "policy": self.policy,
                "tags": self.tags,
            }
        )
        return prune(body)


@register("aws_sqs_queue")
def aws_sqs_queue(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        SqsQueueAttributes,
        name,
        attributes,
        outputs=("id", "arn", "name", "url"),
        computed=(
            "is_fifo",
            "is_encrypted",
            "has_dlq",
            "long_polling_enabled",
            "is_delay_queue",
            "allows_all_sources",
            "queue_type",
            "encryption_type",
        ),
    )
