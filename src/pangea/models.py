from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class OutputFormat(Enum):
    JSON = "json"
    HCL = "hcl"


class ResourceCategory(Enum):
    COMPUTE = "compute"
    NETWORK = "network"
    IDENTITY = "identity"
    MONITORING = "monitoring"
    SECURITY = "security"
    MESSAGING = "messaging"
    OTHER = "other"


RESOURCE_TYPE_CATEGORIES: dict[str, ResourceCategory] = {
    "aws_instance": ResourceCategory.COMPUTE,
    "aws_vpc": ResourceCategory.NETWORK,
    "aws_subnet": ResourceCategory.NETWORK,
    "aws_internet_gateway": ResourceCategory.NETWORK,
    "aws_nat_gateway": ResourceCategory.NETWORK,
    "aws_route_table": ResourceCategory.NETWORK,
    "aws_lb_target_group": ResourceCategory.NETWORK,
    "aws_iam_role": ResourceCategory.IDENTITY,
    "aws_cloudwatch_metric_alarm": ResourceCategory.MONITORING,
    "aws_security_group": ResourceCategory.SECURITY,
    "aws_wafv2_web_acl": ResourceCategory.SECURITY,
    "aws_sqs_queue": ResourceCategory.MESSAGING,
    "aws_kinesis_stream": ResourceCategory.MESSAGING,
}


def category_for(resource_type: str) -> ResourceCategory:
    return RESOURCE_TYPE_CATEGORIES.get(resource_type, ResourceCategory.OTHER)


@dataclass
class SynthesisConfig:
    output_dir: Path
    group_by_category: bool = True
    output_format: OutputFormat = OutputFormat.JSON
    terraform_version: str = ">= 1.5.0"
    aws_provider_version: str = "~> 5.0"
    region: str | None = None

    @property
    def file_suffix(self) -> str:
        return ".tf" if self.output_format is OutputFormat.HCL else ".tf.json"


@dataclass
class SynthesisResult:
    success: bool
    output_path: Path
    resources_synthesized: int
    files: list[Path] = field(default_factory=list)
