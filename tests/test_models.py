from pathlib import Path

from pangea.models import (
    OutputFormat,
    ResourceCategory,
    SynthesisConfig,
    SynthesisResult,
    category_for,
)


class TestResourceCategory:
    def test_category_compute(self) -> None:
        assert category_for("aws_instance") == ResourceCategory.COMPUTE

    def test_category_network(self) -> None:
        for resource_type in (
            "aws_vpc",
            "aws_subnet",
            "aws_internet_gateway",
            "aws_nat_gateway",
            "aws_route_table",
            "aws_lb_target_group",
        ):
            assert category_for(resource_type) == ResourceCategory.NETWORK, resource_type

    def test_category_security(self) -> None:
        assert category_for("aws_security_group") == ResourceCategory.SECURITY
        assert category_for("aws_wafv2_web_acl") == ResourceCategory.SECURITY

    def test_category_messaging(self) -> None:
        assert category_for("aws_sqs_queue") == ResourceCategory.MESSAGING
        assert category_for("aws_kinesis_stream") == ResourceCategory.MESSAGING

    def test_category_identity_and_monitoring(self) -> None:
        assert category_for("aws_iam_role") == ResourceCategory.IDENTITY
        assert category_for("aws_cloudwatch_metric_alarm") == ResourceCategory.MONITORING

    def test_category_unknown(self) -> None:
        assert category_for("aws_unknown_resource") == ResourceCategory.OTHER


class TestSynthesisConfig:
    def test_defaults(self) -> None:
        config = SynthesisConfig(output_dir=Path("/tmp/output"))
        assert config.group_by_category is True
        assert config.output_format == OutputFormat.JSON
        assert config.terraform_version == ">= 1.5.0"
        assert config.aws_provider_version == "~> 5.0"
        assert config.region is None

    def test_file_suffix(self) -> None:
        assert SynthesisConfig(output_dir=Path("out")).file_suffix == ".tf.json"
        hcl = SynthesisConfig(output_dir=Path("out"), output_format=OutputFormat.HCL)
        assert hcl.file_suffix == ".tf"


class TestSynthesisResult:
    def test_files_default_to_empty(self) -> None:
        result = SynthesisResult(success=True, output_path=Path("out"), resources_synthesized=0)
        assert result.files == []
