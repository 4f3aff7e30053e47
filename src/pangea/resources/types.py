from __future__ import annotations

import ipaddress
import re
from typing import Annotated, Literal

from pydantic import AfterValidator, Field

AWS_REGION_PATTERN = r"^[a-z]{2}(-gov)?-[a-z]+-\d$"
WAFV2_ARN_PATTERN = r"^arn:aws:wafv2:"
IAM_ARN_PATTERN = r"^arn:aws:iam::\d{12}:"

_KMS_KEY_ID_PATTERNS = [
    re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE),
    re.compile(
        r"^arn:aws:kms:[a-z0-9-]+:\d{12}:key/"
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
        re.IGNORECASE,
    ),
    re.compile(r"^alias/[a-zA-Z0-9:/_-]+$"),
    re.compile(r"^arn:aws:kms:[a-z0-9-]+:\d{12}:alias/[a-zA-Z0-9:/_-]+$"),
]


def is_interpolation(value: str) -> bool:
    return value.startswith("${") and value.endswith("}")


def is_valid_kms_key_id(value: str) -> bool:
    return any(pattern.match(value) for pattern in _KMS_KEY_ID_PATTERNS)


def validate_literal_cidr(value: str) -> str:
    try:
        network = ipaddress.IPv4Network(value, strict=True)
    except ValueError as e:
        raise ValueError(f"invalid CIDR block '{value}'") from e
    if "/" not in value:
        raise ValueError(f"invalid CIDR block '{value}': prefix length is required")
    return str(network)


def validate_cidr(value: str) -> str:
    if is_interpolation(value):
        return value
    return validate_literal_cidr(value)


def _validate_kms_key_id(value: str) -> str:
    if is_interpolation(value) or is_valid_kms_key_id(value):
        return value
    raise ValueError(f"Invalid KMS key ID format: {value}")


Port = Annotated[int, Field(ge=0, le=65535)]
CidrBlock = Annotated[str, AfterValidator(validate_cidr)]
# VPC and subnet ranges are sized at build time, so they cannot be interpolated.
LiteralCidrBlock = Annotated[str, AfterValidator(validate_literal_cidr)]
AwsRegion = Annotated[str, Field(pattern=AWS_REGION_PATTERN)]
AwsTags = dict[str, str]
KmsKeyId = Annotated[str, AfterValidator(_validate_kms_key_id)]

TargetGroupProtocol = Literal["HTTP", "HTTPS", "TCP", "TLS", "UDP", "TCP_UDP", "GENEVE"]
HealthCheckProtocol = Literal["HTTP", "HTTPS", "TCP", "TLS", "UDP", "TCP_UDP", "GENEVE"]
EbsVolumeType = Literal["standard", "gp2", "gp3", "io1", "io2"]

AlarmComparisonOperator = Literal[
    "GreaterThanOrEqualToThreshold",
    "GreaterThanThreshold",
    "LessThanThreshold",
    "LessThanOrEqualToThreshold",
    "LessThanLowerOrGreaterThanUpperThreshold",
    "LessThanLowerThreshold",
    "GreaterThanUpperThreshold",
]
AlarmStatistic = Literal["SampleCount", "Average", "Sum", "Minimum", "Maximum"]
TreatMissingData = Literal["missing", "ignore", "breaching", "notBreaching"]

WafV2Scope = Literal["REGIONAL", "CLOUDFRONT"]
WafV2PositionalConstraint = Literal[
    "EXACTLY", "STARTS_WITH", "ENDS_WITH", "CONTAINS", "CONTAINS_WORD"
]
WafV2ComparisonOperator = Literal["EQ", "NE", "LE", "LT", "GE", "GT"]
WafV2TextTransformationType = Literal[
    "NONE",
    "COMPRESS_WHITE_SPACE",
    "HTML_ENTITY_DECODE",
    "LOWERCASE",
    "CMD_LINE",
    "URL_DECODE",
    "BASE64_DECODE",
    "HEX_DECODE",
    "MD5",
    "REPLACE_COMMENTS",
    "ESCAPE_SEQ_DECODE",
    "SQL_HEX_DECODE",
    "CSS_DECODE",
    "JS_DECODE",
    "NORMALIZE_PATH",
    "NORMALIZE_PATH_WIN",
    "REMOVE_NULLS",
    "REPLACE_NULLS",
    "BASE64_DECODE_EXT",
    "URL_DECODE_UNI",
    "UTF8_TO_UNICODE",
]
WafV2RateLimit = Annotated[int, Field(ge=100, le=2_000_000_000)]
WafV2FallbackBehavior = Literal["MATCH", "NO_MATCH"]
WafV2OversizeHandling = Literal["CONTINUE", "MATCH", "NO_MATCH"]
