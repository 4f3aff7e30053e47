from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, field_validator, model_validator
from typing_extensions import Self

from pangea.resources.base import ResourceAttributes, declare_resource
from pangea.resources.emit import policy_json, prune
from pangea.resources.registry import register
from pangea.resources.types import AwsTags

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

POLICY_VERSION = "2012-10-17"
DEFAULT_PATH = "/"
DEFAULT_MAX_SESSION_DURATION = 3600


class TrustPolicies:
    """Assume-role policy documents for common trust relationships."""

    @staticmethod
    def service(*principals: str) -> dict[str, Any]:
        service: str | list[str] = principals[0] if len(principals) == 1 else list(principals)
        return {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": service},
                    "Action": "sts:AssumeRole",
                }
            ],
        }

    @classmethod
    def ec2_service(cls) -> dict[str, Any]:
        return cls.service("ec2.amazonaws.com")

    @classmethod
    def lambda_service(cls) -> dict[str, Any]:
        return cls.service("lambda.amazonaws.com")

    @classmethod
    def ecs_task_service(cls) -> dict[str, Any]:
        return cls.service("ecs-tasks.amazonaws.com")

    @staticmethod
    def cross_account(account_id: str, external_id: str | None = None) -> dict[str, Any]:
        statement: dict[str, Any] = {
            "Effect": "Allow",
            "Principal": {"AWS": f"arn:aws:iam::{account_id}:root"},
            "Action": "sts:AssumeRole",
        }
        if external_id:
            statement["Condition"] = {"StringEquals": {"sts:ExternalId": external_id}}
        return {"Version": POLICY_VERSION, "Statement": [statement]}

    @staticmethod
    def saml_federated(provider_arn: str) -> dict[str, Any]:
        return {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Federated": provider_arn},
                    "Action": "sts:AssumeRoleWithSAML",
                    "Condition": {
                        "StringEquals": {"SAML:aud": "https://signin.aws.amazon.com/saml"}
                    },
                }
            ],
        }

    @staticmethod
    def web_identity(provider_arn: str, conditions: dict[str, Any] | None = None) -> dict[str, Any]:
        statement: dict[str, Any] = {
            "Effect": "Allow",
            "Principal": {"Federated": provider_arn},
            "Action": "sts:AssumeRoleWithWebIdentity",
        }
        if conditions:
            statement["Condition"] = conditions
        return {"Version": POLICY_VERSION, "Statement": [statement]}


def _parse_policy(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"policy document must be valid JSON: {e.msg}") from e
    return value


class IamRoleAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_iam_role"

    name: str | None = Field(default=None, max_length=64)
    name_prefix: str | None = Field(default=None, max_length=38)
    path: str = DEFAULT_PATH
    description: str | None = Field(default=None, max_length=1000)
    assume_role_policy: dict[str, Any]
    force_detach_policies: bool = False
    max_session_duration: int = Field(default=DEFAULT_MAX_SESSION_DURATION, ge=3600, le=43200)
    permissions_boundary: str | None = None
    inline_policies: dict[str, dict[str, Any]] = Field(default_factory=dict)
    managed_policy_arns: list[str] = Field(default_factory=list)
    tags: AwsTags = Field(default_factory=dict)

    @field_validator("assume_role_policy", mode="before")
    @classmethod
    def _decode_assume_role_policy(cls, value: Any) -> Any:
        return _parse_policy(value)

    @field_validator("inline_policies", mode="before")
    @classmethod
    def _decode_inline_policies(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {name: _parse_policy(document) for name, document in value.items()}
        return value

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not (value.startswith("/") and value.endswith("/")):
            raise ValueError(f"IAM path '{value}' must begin and end with '/'")
        return value

    @model_validator(mode="after")
    def _check_role(self) -> Self:
        if self.name and self.name_prefix:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        statements = self.assume_role_policy.get("Statement")
        if not isinstance(statements, list) or not statements:
            raise ValueError("Assume role policy must have at least one statement")
        return self

    def _principals(self) -> list[dict[str, Any]]:
        return [
            statement.get("Principal") or {}
            for statement in self.assume_role_policy["Statement"]
            if isinstance(statement, dict)
        ]

    @property
    def service_principal(self) -> str | None:
        for principal in self._principals():
            service = principal.get("Service")
            if isinstance(service, list):
                return service[0] if service else None
            if service:
                return service
        return None

    @property
    def is_service_role(self) -> bool:
        return self.trust_policy_type == "service"

    @property
    def is_federated_role(self) -> bool:
        return self.trust_policy_type == "federated"

    @property
    def trust_policy_type(self) -> str:
        principals = self._principals()
        if any("Service" in principal for principal in principals):
            return "service"
        if any("Federated" in principal for principal in principals):
            return "federated"
        if any("AWS" in principal for principal in principals):
            return "aws_account"
        return "unknown"

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "name_prefix": self.name_prefix,
                "path": self.path if self.path != DEFAULT_PATH else None,
                "description": self.description,
                "assume_role_policy": policy_json(self.assume_role_policy),
                "force_detach_policies": self.force_detach_policies or None,
                "max_session_duration": (
                    self.max_session_duration
                    if self.max_session_duration != DEFAULT_MAX_SESSION_DURATION
                    else None
                ),
                "permissions_boundary": self.permissions_boundary,
                "inline_policy": [
                    {"name": policy_name, "policy": policy_json(document)}
                    for policy_name, document in self.inline_policies.items()
                ],
                "managed_policy_arns": self.managed_policy_arns,
                "tags": self.tags,
            }
        )


@register("aws_iam_role")
def aws_iam_role(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        IamRoleAttributes,
        name,
        attributes,
        outputs=("id", "arn", "name", "unique_id", "create_date"),
        computed=(
            "service_principal",
            "is_service_role",
            "is_federated_role",
            "trust_policy_type",
        ),
    )
