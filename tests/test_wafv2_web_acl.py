from typing import Any

import pytest

from pangea.errors import AttributeValidationError
from pangea.resources.aws import aws_wafv2_web_acl
from pangea.synthesizer import TerraformSynthesizer


def _visibility(metric_name: str) -> dict[str, Any]:
    return {
        "cloudwatch_metrics_enabled": True,
        "metric_name": metric_name,
        "sampled_requests_enabled": True,
    }


def _rule(name: str, priority: int, statement: dict[str, Any], **extra: Any) -> dict[str, Any]:
    rule = {
        "name": name,
        "priority": priority,
        "statement": statement,
        "visibility_config": _visibility(name),
    }
    if "override_action" not in extra and "action" not in extra:
        extra["action"] = {"block": {}}
    rule.update(extra)
    return rule


def _acl(**overrides: Any) -> dict[str, Any]:
    acl = {
        "name": "app-acl",
        "scope": "REGIONAL",
        "default_action": {"allow": {}},
        "visibility_config": _visibility("app-acl"),
    }
    acl.update(overrides)
    return acl


RATE_LIMIT = {"rate_based_statement": {"limit": 2000}}
GEO_BLOCK = {"geo_match_statement": {"country_codes": ["CN", "RU"]}}
MANAGED_COMMON = {
    "managed_rule_group_statement": {"vendor_name": "AWS", "name": "AWSManagedRulesCommonRuleSet"}
}
SQLI = {
    "sqli_match_statement": {
        "field_to_match": {"body": {}},
        "text_transformations": [{"priority": 0, "type": "URL_DECODE"}],
    }
}


def _body(synth: TerraformSynthesizer, name: str = "acl") -> dict:
    return synth.synthesis["resource"]["aws_wafv2_web_acl"][name]


class TestWebAclEmission:
    def test_minimal_acl_keeps_empty_action_block(self, synth: TerraformSynthesizer) -> None:
        aws_wafv2_web_acl(synth, "acl", _acl())
        assert _body(synth) == {
            "name": "app-acl",
            "scope": "REGIONAL",
            "default_action": {"allow": {}},
            "visibility_config": _visibility("app-acl"),
        }

    def test_scope_is_normalized(self, synth: TerraformSynthesizer) -> None:
        aws_wafv2_web_acl(synth, "acl", _acl(scope="regional"))
        assert _body(synth)["scope"] == "REGIONAL"

    def test_invalid_scope(self, synth: TerraformSynthesizer) -> None:
        with pytest.raises(AttributeValidationError, match="scope"):
            aws_wafv2_web_acl(synth, "acl", _acl(scope="GLOBAL"))

    def test_rate_limit_rule(self, synth: TerraformSynthesizer) -> None:
        aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("rate-limit", 1, RATE_LIMIT)]))
        assert _body(synth)["rule"] == [
            {
                "name": "rate-limit",
                "priority": 1,
                "action": {"block": {}},
                "statement": {
                    "rate_based_statement": {"limit": 2000, "aggregate_key_type": "IP"}
                },
                "visibility_config": _visibility("rate-limit"),
            }
        ]

    def test_managed_rule_group_uses_override_action(self, synth: TerraformSynthesizer) -> None:
        rule = _rule("common", 0, MANAGED_COMMON, override_action={"none": {}})
        aws_wafv2_web_acl(synth, "acl", _acl(rules=[rule]))
        emitted = _body(synth)["rule"][0]
        assert emitted["override_action"] == {"none": {}}
        assert "action" not in emitted
        assert emitted["statement"] == {
            "managed_rule_group_statement": {
                "vendor_name": "AWS",
                "name": "AWSManagedRulesCommonRuleSet",
            }
        }

    def test_nested_logical_statements(self, synth: TerraformSynthesizer) -> None:
        statement = {
            "and_statement": {
                "statements": [
                    GEO_BLOCK,
                    {
                        "not_statement": {
                            "statement": {
                                "byte_match_statement": {
                                    "field_to_match": {"uri_path": {}},
                                    "positional_constraint": "STARTS_WITH",
                                    "search_string": "/health",
                                    "text_transformations": [{"priority": 0, "type": "NONE"}],
                                }
                            }
                        }
                    },
                ]
            }
        }
        aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("geo", 0, statement)]))
        emitted = _body(synth)["rule"][0]["statement"]["and_statement"]["statement"]
        assert emitted[0] == {"geo_match_statement": {"country_codes": ["CN", "RU"]}}
        assert emitted[1]["not_statement"]["statement"]["byte_match_statement"] == {
            "positional_constraint": "STARTS_WITH",
            "search_string": "/health",
            "field_to_match": {"uri_path": {}},
            "text_transformation": [{"priority": 0, "type": "NONE"}],
        }

    def test_custom_response_body(self, synth: TerraformSynthesizer) -> None:
        action = {
            "block": {
                "custom_response": {"response_code": 429, "custom_response_body_key": "too_many"}
            }
        }
        ref = aws_wafv2_web_acl(
            synth,
            "acl",
            _acl(
                rules=[_rule("rate-limit", 1, RATE_LIMIT, action=action)],
                custom_response_bodies={
                    "too_many": {"content": "Slow down", "content_type": "TEXT_PLAIN"}
                },
            ),
        )
        body = _body(synth)
        assert body["rule"][0]["action"] == {
            "block": {
                "custom_response": {"response_code": 429, "custom_response_body_key": "too_many"}
            }
        }
        assert body["custom_response_body"] == [
            {"key": "too_many", "content": "Slow down", "content_type": "TEXT_PLAIN"}
        ]
        assert ref.uses_custom_responses is True


class TestWebAclValidation:
    def test_statement_requires_a_type(self, synth: TerraformSynthesizer) -> None:
        with pytest.raises(AttributeValidationError, match="exactly one statement type"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("empty", 0, {})]))

    def test_statement_rejects_multiple_types(self, synth: TerraformSynthesizer) -> None:
        with pytest.raises(
            AttributeValidationError, match="got: geo_match_statement, rate_based_statement"
        ):
            aws_wafv2_web_acl(
                synth, "acl", _acl(rules=[_rule("both", 0, {**GEO_BLOCK, **RATE_LIMIT})])
            )

    def test_rule_priorities_must_be_unique(self, synth: TerraformSynthesizer) -> None:
        rules = [_rule("a", 1, RATE_LIMIT), _rule("b", 1, GEO_BLOCK)]
        with pytest.raises(AttributeValidationError, match="priorities must be unique"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=rules))

    def test_rule_names_must_be_unique(self, synth: TerraformSynthesizer) -> None:
        rules = [_rule("a", 1, RATE_LIMIT), _rule("a", 2, GEO_BLOCK)]
        with pytest.raises(AttributeValidationError, match="names must be unique"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=rules))

    def test_rule_group_rejects_action(self, synth: TerraformSynthesizer) -> None:
        with pytest.raises(AttributeValidationError, match="must use override_action"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("common", 0, MANAGED_COMMON)]))

    def test_override_action_requires_rule_group(self, synth: TerraformSynthesizer) -> None:
        rule = _rule("rate", 0, RATE_LIMIT, override_action={"count": {}})
        rule.pop("action", None)
        with pytest.raises(AttributeValidationError, match="only use override_action"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[rule]))

    def test_rule_action_requires_exactly_one(self, synth: TerraformSynthesizer) -> None:
        rule = _rule("rate", 0, RATE_LIMIT, action={"block": {}, "count": {}})
        with pytest.raises(AttributeValidationError, match="got: block, count"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[rule]))

    def test_default_action_requires_exactly_one(self, synth: TerraformSynthesizer) -> None:
        with pytest.raises(AttributeValidationError, match="exactly one of allow or block"):
            aws_wafv2_web_acl(synth, "acl", _acl(default_action={}))

    def test_rate_limit_bounds(self, synth: TerraformSynthesizer) -> None:
        statement = {"rate_based_statement": {"limit": 10}}
        with pytest.raises(AttributeValidationError, match="limit"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("rate", 0, statement)]))

    def test_forwarded_ip_aggregation_needs_config(self, synth: TerraformSynthesizer) -> None:
        statement = {"rate_based_statement": {"limit": 2000, "aggregate_key_type": "FORWARDED_IP"}}
        with pytest.raises(AttributeValidationError, match="forwarded_ip_config is required"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("rate", 0, statement)]))

    def test_invalid_country_codes(self, synth: TerraformSynthesizer) -> None:
        statement = {"geo_match_statement": {"country_codes": ["US", "usa"]}}
        with pytest.raises(AttributeValidationError, match="Invalid country codes: usa"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("geo", 0, statement)]))

    def test_logical_statement_needs_two_operands(self, synth: TerraformSynthesizer) -> None:
        statement = {"or_statement": {"statements": [GEO_BLOCK]}}
        with pytest.raises(AttributeValidationError, match="statements"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("or", 0, statement)]))

    def test_field_to_match_requires_one_component(self, synth: TerraformSynthesizer) -> None:
        statement = {
            "xss_match_statement": {
                "field_to_match": {"body": {}, "uri_path": {}},
                "text_transformations": [{"priority": 0, "type": "NONE"}],
            }
        }
        with pytest.raises(AttributeValidationError, match="exactly one component"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("xss", 0, statement)]))

    def test_ip_set_arn_format(self, synth: TerraformSynthesizer) -> None:
        statement = {"ip_set_reference_statement": {"arn": "arn:aws:s3:::bucket"}}
        with pytest.raises(AttributeValidationError, match="arn"):
            aws_wafv2_web_acl(synth, "acl", _acl(rules=[_rule("ipset", 0, statement)]))

    def test_undefined_response_body(self, synth: TerraformSynthesizer) -> None:
        default_action = {
            "block": {"custom_response": {"response_code": 403, "custom_response_body_key": "x"}}
        }
        with pytest.raises(AttributeValidationError, match="referenced but not defined"):
            aws_wafv2_web_acl(synth, "acl", _acl(default_action=default_action))

    def test_unreferenced_response_body(self, synth: TerraformSynthesizer) -> None:
        bodies = {"unused": {"content": "x", "content_type": "TEXT_PLAIN"}}
        with pytest.raises(AttributeValidationError, match="defined but not referenced"):
            aws_wafv2_web_acl(synth, "acl", _acl(custom_response_bodies=bodies))

    def test_cloudfront_rejects_captcha(self, synth: TerraformSynthesizer) -> None:
        rule = _rule("bots", 0, RATE_LIMIT, action={"captcha": {}})
        with pytest.raises(AttributeValidationError, match="not supported for CloudFront scope"):
            aws_wafv2_web_acl(synth, "acl", _acl(scope="CLOUDFRONT", rules=[rule]))

    def test_regional_allows_captcha(self, synth: TerraformSynthesizer) -> None:
        rule = _rule("bots", 0, RATE_LIMIT, action={"captcha": {}})
        aws_wafv2_web_acl(synth, "acl", _acl(rules=[rule]))
        assert _body(synth)["rule"][0]["action"] == {"captcha": {}}


class TestWebAclComputed:
    def test_capacity_and_feature_flags(self, synth: TerraformSynthesizer) -> None:
        rules = [
            _rule("common", 0, MANAGED_COMMON, override_action={"none": {}}),
            _rule("rate", 1, RATE_LIMIT),
            _rule("geo", 2, GEO_BLOCK),
            _rule("sqli", 3, SQLI),
        ]
        ref = aws_wafv2_web_acl(synth, "acl", _acl(rules=rules))
        assert ref.total_capacity_units_estimate == 1 + 100 + 50 + 10 + 20
        assert ref.has_managed_rules is True
        assert ref.has_rate_limiting is True
        assert ref.has_geo_blocking is True
        assert ref.uses_custom_responses is False

    def test_empty_acl(self, synth: TerraformSynthesizer) -> None:
        ref = aws_wafv2_web_acl(synth, "acl", _acl())
        assert ref.total_capacity_units_estimate == 1
        assert ref.has_rate_limiting is False
        assert ref.capacity == "${aws_wafv2_web_acl.acl.capacity}"
