from pangea.resources.aws.cloudwatch_metric_alarm import aws_cloudwatch_metric_alarm
from pangea.resources.aws.iam_role import TrustPolicies, aws_iam_role
from pangea.resources.aws.instance import aws_instance
from pangea.resources.aws.kinesis_stream import aws_kinesis_stream
from pangea.resources.aws.lb_target_group import aws_lb_target_group
from pangea.resources.aws.security_group import aws_security_group
from pangea.resources.aws.sqs_queue import aws_sqs_queue
from pangea.resources.aws.vpc import (
    aws_internet_gateway,
    aws_nat_gateway,
    aws_route_table,
    aws_subnet,
    aws_vpc,
)
from pangea.resources.aws.wafv2_web_acl import aws_wafv2_web_acl

__all__ = [
    "TrustPolicies",
    "aws_cloudwatch_metric_alarm",
    "aws_iam_role",
    "aws_instance",
    "aws_internet_gateway",
    "aws_kinesis_stream",
    "aws_lb_target_group",
    "aws_nat_gateway",
    "aws_route_table",
    "aws_security_group",
    "aws_sqs_queue",
    "aws_subnet",
    "aws_vpc",
    "aws_wafv2_web_acl",
]
