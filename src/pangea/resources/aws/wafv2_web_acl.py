from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, model_validator
from typing_extensions import Self

from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.emit import prune
from pangea.resources.registry import register
from pangea.resources.types import (
    WAFV2_ARN_PATTERN,
    AwsTags,
    WafV2ComparisonOperator,
    WafV2FallbackBehavior,
    WafV2OversizeHandling,
    WafV2PositionalConstraint,
    WafV2RateLimit,
    WafV2Scope,
    WafV2TextTransformationType,
)

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

STATEMENT_TYPES = (
    "byte_match_statement",
    "sqli_match_statement",
    "xss_match_statement",
    "size_constraint_statement",
    "geo_match_statement",
    "ip_set_reference_statement",
    "rule_group_reference_statement",
    "managed_rule_group_statement",
    "rate_based_statement",
    "and_statement",
    "or_statement",
    "not_statement",
)
RULE_GROUP_STATEMENTS = ("rule_group_reference_statement", "managed_rule_group_statement")
RULE_ACTIONS = ("allow", "block", "count", "captcha", "challenge")
CLOUDFRONT_UNSUPPORTED_ACTIONS = ("captcha", "challenge")

# Rough WCU cost per top-level statement type.
BASE_ACL_CAPACITY = 1
STATEMENT_CAPACITY = {
    "managed_rule_group_statement": 100,
    "rate_based_statement": 50,
    "and_statement": 30,
    "or_statement": 30,
    "geo_match_statement": 10,
    "ip_set_reference_statement": 10,
    "byte_match_statement": 20,
    "sqli_match_statement": 20,
    "xss_match_statement": 20,
}
DEFAULT_STATEMENT_CAPACITY = 5

NAME_PATTERN = r"^[a-zA-Z0-9_-]{1,128}$"


def _exactly_one(block: AttributeBlock, choices: tuple[str, ...]) -> list[str]:
    return [choice for choice in choices if getattr(block, choice) is not None]


class EmptyBlock(AttributeBlock):
    pass


class NamedBlock(AttributeBlock):
    name: str


class BodyMatch(AttributeBlock):
    oversize_handling: WafV2OversizeHandling | None = None


class JsonMatchPattern(AttributeBlock):
    all: EmptyBlock | None = None
    included_paths: list[str] | None = None

    @model_validator(mode="after")
    def _check_pattern(self) -> Self:
        if self.all is not None and self.included_paths:
            raise ValueError("JSON body match pattern cannot specify both 'all' and 'included_paths'")
        if self.all is None and not self.included_paths:
            raise ValueError("JSON body match pattern must specify either 'all' or 'included_paths'")
        return self


class JsonBodyMatch(AttributeBlock):
    match_pattern: JsonMatchPattern
    match_scope: Literal["ALL", "KEY", "VALUE"]
    invalid_fallback_behavior: Literal["MATCH", "NO_MATCH", "EVALUATE_AS_STRING"] | None = None
    oversize_handling: WafV2OversizeHandling | None = None


class FieldToMatch(AttributeBlock):
    all_query_arguments: EmptyBlock | None = None
    body: BodyMatch | None = None
    method: EmptyBlock | None = None
    query_string: EmptyBlock | None = None
    single_header: NamedBlock | None = None
    single_query_argument: NamedBlock | None = None
    uri_path: EmptyBlock | None = None
    json_body: JsonBodyMatch | None = None

    @model_validator(mode="after")
    def _check_single_component(self) -> Self:
        components = _exactly_one(self, tuple(type(self).model_fields))
        if len(components) != 1:
            raise ValueError(
                "field_to_match must specify exactly one component, "
                f"got: {', '.join(components) or 'none'}"
            )
        return self

    def to_terraform(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TextTransformation(AttributeBlock):
    priority: int = Field(ge=0)
    type: WafV2TextTransformationType


def _transformations(items: list[TextTransformation]) -> list[dict[str, Any]]:
    return [{"priority": item.priority, "type": item.type} for item in items]


class MatchStatement(AttributeBlock):
    field_to_match: FieldToMatch
    text_transformations: list[TextTransformation] = Field(min_length=1)

    def to_terraform(self) -> dict[str, Any]:
        return {
            "field_to_match": self.field_to_match.to_terraform(),
            "text_transformation": _transformations(self.text_transformations),
        }


class ByteMatchStatement(MatchStatement):
    positional_constraint: WafV2PositionalConstraint
    search_string: str = Field(min_length=1)

    def to_terraform(self) -> dict[str, Any]:
        return {
            "positional_constraint": self.positional_constraint,
            "search_string": self.search_string,
            **super().to_terraform(),
        }


class SizeConstraintStatement(MatchStatement):
    comparison_operator: WafV2ComparisonOperator
    size: int = Field(ge=0, le=21_474_836_480)

    def to_terraform(self) -> dict[str, Any]:
        return {
            "comparison_operator": self.comparison_operator,
            "size": self.size,
            **super().to_terraform(),
        }


class ForwardedIpConfig(AttributeBlock):
    header_name: str
    fallback_behavior: WafV2FallbackBehavior


class IpSetForwardedIpConfig(ForwardedIpConfig):
    position: Literal["FIRST", "LAST", "ANY"]


class GeoMatchStatement(AttributeBlock):
    country_codes: list[str] = Field(min_length=1)
    forwarded_ip_config: ForwardedIpConfig | None = None

    @model_validator(mode="after")
    def _check_country_codes(self) -> Self:
        invalid = [code for code in self.country_codes if len(code) != 2 or not code.isupper()]
        if invalid:
            raise ValueError(f"Invalid country codes: {', '.join(invalid)}")
        return self

    def to_terraform(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class IpSetReferenceStatement(AttributeBlock):
    arn: str = Field(pattern=WAFV2_ARN_PATTERN)
    ip_set_forwarded_ip_config: IpSetForwardedIpConfig | None = None

    def to_terraform(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RuleGroupReferenceStatement(AttributeBlock):
    arn: str = Field(pattern=WAFV2_ARN_PATTERN)
    excluded_rules: list[NamedBlock] = Field(default_factory=list)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "arn": self.arn,
                "excluded_rule": [{"name": rule.name} for rule in self.excluded_rules],
            }
        )


class ManagedRuleGroupStatement(AttributeBlock):
    vendor_name: str
    name: str
    version: str | None = None
    excluded_rules: list[NamedBlock] = Field(default_factory=list)
    scope_down_statement: Statement | None = None
    managed_rule_group_configs: list[dict[str, Any]] = Field(default_factory=list)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "vendor_name": self.vendor_name,
                "name": self.name,
                "version": self.version,
                "excluded_rule": [{"name": rule.name} for rule in self.excluded_rules],
                "scope_down_statement": (
                    self.scope_down_statement.to_terraform() if self.scope_down_statement else None
                ),
                "managed_rule_group_configs": self.managed_rule_group_configs,
            }
        )


class RateBasedStatement(AttributeBlock):
    limit: WafV2RateLimit
    aggregate_key_type: Literal["IP", "FORWARDED_IP"] = "IP"
    forwarded_ip_config: ForwardedIpConfig | None = None
    scope_down_statement: Statement | None = None

    @model_validator(mode="after")
    def _check_forwarded_ip(self) -> Self:
        if self.aggregate_key_type == "FORWARDED_IP" and self.forwarded_ip_config is None:
            raise ValueError("forwarded_ip_config is required when aggregate_key_type is FORWARDED_IP")
        return self

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "limit": self.limit,
                "aggregate_key_type": self.aggregate_key_type,
                "forwarded_ip_config": (
                    self.forwarded_ip_config.model_dump() if self.forwarded_ip_config else None
                ),
                "scope_down_statement": (
                    self.scope_down_statement.to_terraform() if self.scope_down_statement else None
                ),
            }
        )


class LogicalStatement(AttributeBlock):
    statements: list[Statement] = Field(min_length=2)

    def to_terraform(self) -> dict[str, Any]:
        return {"statement": [statement.to_terraform() for statement in self.statements]}


class NotStatement(AttributeBlock):
    statement: Statement

    def to_terraform(self) -> dict[str, Any]:
        return {"statement": self.statement.to_terraform()}


class Statement(AttributeBlock):
    """A WAF match condition; exactly one statement type may be set."""

    byte_match_statement: ByteMatchStatement | None = None
    sqli_match_statement: MatchStatement | None = None
    xss_match_statement: MatchStatement | None = None
    size_constraint_statement: SizeConstraintStatement | None = None
    geo_match_statement: GeoMatchStatement | None = None
    ip_set_reference_statement: IpSetReferenceStatement | None = None
    rule_group_reference_statement: RuleGroupReferenceStatement | None = None
    managed_rule_group_statement: ManagedRuleGroupStatement | None = None
    rate_based_statement: RateBasedStatement | None = None
    and_statement: LogicalStatement | None = None
    or_statement: LogicalStatement | None = None
    not_statement: NotStatement | None = None

    @model_validator(mode="before")
    @classmethod
    def _check_single_type(cls, data: Any) -> Any:
        if isinstance(data, dict):
            provided = [key for key in STATEMENT_TYPES if data.get(key) is not None]
            if not provided:
                raise ValueError("WAF v2 statement must specify exactly one statement type")
            if len(provided) > 1:
                raise ValueError(
                    "WAF v2 statement must specify exactly one statement type, "
                    f"got: {', '.join(provided)}"
                )
        return data

    @property
    def statement_type(self) -> str:
        return _exactly_one(self, STATEMENT_TYPES)[0]

    def to_terraform(self) -> dict[str, Any]:
        kind = self.statement_type
        return {kind: getattr(self, kind).to_terraform()}


for _model in (
    ManagedRuleGroupStatement,
    RateBasedStatement,
    LogicalStatement,
    NotStatement,
    Statement,
):
    _model.model_rebuild()


class InsertHeader(AttributeBlock):
    name: str
    value: str


class CustomRequestHandling(AttributeBlock):
    insert_headers: list[InsertHeader] = Field(min_length=1)

    def to_terraform(self) -> dict[str, Any]:
        return {"insert_header": [header.model_dump() for header in self.insert_headers]}


class CustomResponse(AttributeBlock):
    response_code: int = Field(ge=200, le=599)
    custom_response_body_key: str | None = None
    response_headers: list[InsertHeader] = Field(default_factory=list)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "response_code": self.response_code,
                "custom_response_body_key": self.custom_response_body_key,
                "response_header": [header.model_dump() for header in self.response_headers],
            }
        )


class RequestAction(AttributeBlock):
    custom_request_handling: CustomRequestHandling | None = None

    def to_terraform(self) -> dict[str, Any]:
        if self.custom_request_handling is None:
            return {}
        return {"custom_request_handling": self.custom_request_handling.to_terraform()}


class BlockAction(AttributeBlock):
    custom_response: CustomResponse | None = None

    def to_terraform(self) -> dict[str, Any]:
        if self.custom_response is None:
            return {}
        return {"custom_response": self.custom_response.to_terraform()}

    @property
    def body_key(self) -> str | None:
        return self.custom_response.custom_response_body_key if self.custom_response else None


class RuleAction(AttributeBlock):
    allow: RequestAction | None = None
    block: BlockAction | None = None
    count: RequestAction | None = None
    captcha: RequestAction | None = None
    challenge: RequestAction | None = None

    @model_validator(mode="after")
    def _check_single_action(self) -> Self:
        actions = _exactly_one(self, RULE_ACTIONS)
        if len(actions) != 1:
            raise ValueError(
                f"Rule action must specify exactly one of {', '.join(RULE_ACTIONS)}, "
                f"got: {', '.join(actions) or 'none'}"
            )
        return self

    @property
    def kind(self) -> str:
        return _exactly_one(self, RULE_ACTIONS)[0]

    def to_terraform(self) -> dict[str, Any]:
        return {self.kind: getattr(self, self.kind).to_terraform()}


class OverrideAction(AttributeBlock):
    count: EmptyBlock | None = None
    none: EmptyBlock | None = None

    @model_validator(mode="after")
    def _check_single_action(self) -> Self:
        if (self.count is None) == (self.none is None):
            raise ValueError("Override action must specify exactly one of count or none")
        return self

    def to_terraform(self) -> dict[str, Any]:
        return {"count": {}} if self.count is not None else {"none": {}}


class DefaultAction(AttributeBlock):
    allow: RequestAction | None = None
    block: BlockAction | None = None

    @model_validator(mode="after")
    def _check_single_action(self) -> Self:
        if (self.allow is None) == (self.block is None):
            raise ValueError("Default action must specify exactly one of allow or block")
        return self

    def to_terraform(self) -> dict[str, Any]:
        if self.allow is not None:
            return {"allow": self.allow.to_terraform()}
        return {"block": self.block.to_terraform()}


class VisibilityConfig(AttributeBlock):
    cloudwatch_metrics_enabled: bool
    metric_name: str = Field(pattern=NAME_PATTERN)
    sampled_requests_enabled: bool


class WebAclRule(AttributeBlock):
    name: str = Field(pattern=NAME_PATTERN)
    priority: int = Field(ge=0)
    statement: Statement
    action: RuleAction | None = None
    override_action: OverrideAction | None = None
    visibility_config: VisibilityConfig
    rule_labels: list[NamedBlock] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_action(self) -> Self:
        if (self.action is None) == (self.override_action is None):
            raise ValueError(
                f"Rule '{self.name}' must specify exactly one of action or override_action"
            )
        uses_rule_group = self.statement.statement_type in RULE_GROUP_STATEMENTS
        if uses_rule_group and self.action is not None:
            raise ValueError(
                f"Rule '{self.name}' references a rule group and must use override_action"
            )
        if not uses_rule_group and self.override_action is not None:
            raise ValueError(
                f"Rule '{self.name}' can only use override_action with a rule group statement"
            )
        return self

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "priority": self.priority,
                "action": self.action.to_terraform() if self.action else None,
                "override_action": (
                    self.override_action.to_terraform() if self.override_action else None
                ),
                "statement": self.statement.to_terraform(),
                "visibility_config": self.visibility_config.model_dump(),
                "rule_label": [{"name": label.name} for label in self.rule_labels],
            }
        )


class CustomResponseBody(AttributeBlock):
    content: str = Field(max_length=10_240)
    content_type: Literal["TEXT_PLAIN", "TEXT_HTML", "APPLICATION_JSON"]


class ImmunityTimeProperty(AttributeBlock):
    immunity_time: int = Field(ge=60, le=259_200)


class ImmunityConfig(AttributeBlock):
    immunity_time_property: ImmunityTimeProperty


class WebAclAttributes(ResourceAttributes):
    resource_type: ClassVar[str] = "aws_wafv2_web_acl"

    name: str = Field(pattern=NAME_PATTERN)
    scope: WafV2Scope
    default_action: DefaultAction
    description: str | None = Field(default=None, max_length=256)
    rules: list[WebAclRule] = Field(default_factory=list)
    visibility_config: VisibilityConfig
    custom_response_bodies: dict[str, CustomResponseBody] = Field(default_factory=dict)
    token_domains: list[str] = Field(default_factory=list)
    captcha_config: ImmunityConfig | None = None
    challenge_config: ImmunityConfig | None = None
    tags: AwsTags = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize_scope(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("scope"), str):
            data = {**data, "scope": data["scope"].upper()}
        return data

    @model_validator(mode="after")
    def _check_web_acl(self) -> Self:
        priorities = [rule.priority for rule in self.rules]
        if len(priorities) != len(set(priorities)):
            raise ValueError("WAF v2 Web ACL rule priorities must be unique")
        names = [rule.name for rule in self.rules]
        if len(names) != len(set(names)):
            raise ValueError("WAF v2 Web ACL rule names must be unique")
        self._check_custom_response_bodies()
        if self.scope == "CLOUDFRONT":
            for rule in self.rules:
                if rule.action and rule.action.kind in CLOUDFRONT_UNSUPPORTED_ACTIONS:
                    raise ValueError(
                        "CAPTCHA and Challenge actions are not supported for CloudFront scope"
                    )
        return self

    def _check_custom_response_bodies(self) -> None:
        invalid = [key for key in self.custom_response_bodies if not _is_body_key(key)]
        if invalid:
            raise ValueError(f"Invalid custom response body keys: {', '.join(invalid)}")
        referenced = self.referenced_response_body_keys()
        defined = list(self.custom_response_bodies)
        undefined = [key for key in referenced if key not in defined]
        if undefined:
            raise ValueError(
                f"Custom response body keys {', '.join(undefined)} are referenced but not defined"
            )
        unreferenced = [key for key in defined if key not in referenced]
        if unreferenced:
            raise ValueError(
                f"Custom response bodies {', '.join(unreferenced)} are defined but not referenced"
            )

    def referenced_response_body_keys(self) -> list[str]:
        blocks = [self.default_action.block]
        blocks.extend(rule.action.block for rule in self.rules if rule.action)
        return [block.body_key for block in blocks if block is not None and block.body_key]

    @property
    def total_capacity_units_estimate(self) -> int:
        return BASE_ACL_CAPACITY + sum(
            STATEMENT_CAPACITY.get(rule.statement.statement_type, DEFAULT_STATEMENT_CAPACITY)
            for rule in self.rules
        )

    def _uses_statement(self, statement_type: str) -> bool:
        return any(rule.statement.statement_type == statement_type for rule in self.rules)

    @property
    def has_rate_limiting(self) -> bool:
        return self._uses_statement("rate_based_statement")

    @property
    def has_geo_blocking(self) -> bool:
        return self._uses_statement("geo_match_statement")

    @property
    def has_managed_rules(self) -> bool:
        return self._uses_statement("managed_rule_group_statement")

    @property
    def uses_custom_responses(self) -> bool:
        return bool(self.custom_response_bodies)

    def to_terraform(self) -> dict[str, Any]:
        return prune(
            {
                "name": self.name,
                "scope": self.scope,
                "description": self.description,
                "default_action": self.default_action.to_terraform(),
                "rule": [rule.to_terraform() for rule in self.rules],
                "visibility_config": self.visibility_config.model_dump(),
                "custom_response_body": [
                    {"key": key, "content": body.content, "content_type": body.content_type}
                    for key, body in self.custom_response_bodies.items()
                ],
                "token_domains": self.token_domains,
                "captcha_config": self.captcha_config.model_dump() if self.captcha_config else None,
                "challenge_config": (
                    self.challenge_config.model_dump() if self.challenge_config else None
                ),
                "tags": self.tags,
            }
        )


def _is_body_key(key: str) -> bool:
    return 0 < len(key) <= 64 and all(ch.isalnum() or ch in "_-" for ch in key)


@register("aws_wafv2_web_acl")
def aws_wafv2_web_acl(
    synth: TerraformSynthesizer, name: str, attributes: dict[str, Any] | None = None
) -> ResourceReference:
    return declare_resource(
        synth,
        WebAclAttributes,
        name,
        attributes,
        outputs=("id", "arn", "capacity", "lock_token", "name", "application_integration_url"),
        computed=(
            "total_capacity_units_estimate",
            "has_rate_limiting",
            "has_geo_blocking",
            "has_managed_rules",
            "uses_custom_responses",
        ),
    )
