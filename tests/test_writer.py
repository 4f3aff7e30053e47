from __future__ import annotations

import json
from pathlib import Path

import hcl2
import pytest

from pangea.models import OutputFormat, SynthesisConfig
from pangea.resources.aws import aws_iam_role, aws_security_group, aws_subnet, aws_vpc
from pangea.resources.aws.iam_role import TrustPolicies
from pangea.synthesizer import TerraformSynthesizer
from pangea.writer import TerraformWriter


@pytest.fixture
def populated(synth: TerraformSynthesizer) -> TerraformSynthesizer:
    synth.terraform(
        required_version=">= 1.5.0",
        required_providers={"aws": {"source": "hashicorp/aws", "version": "~> 5.0"}},
    )
    synth.provider("aws", region="us-east-1")
    synth.variable("environment", type="string", default="dev")
    vpc = aws_vpc(synth, "main", {"cidr_block": "10.0.0.0/16", "tags": {"Name": "main"}})
    aws_subnet(
        synth,
        "app",
        {"vpc_id": vpc.id, "cidr_block": "10.0.1.0/24", "availability_zone": "us-east-1a"},
    )
    synth.output("vpc_id", vpc.id, description="Main VPC")
    return synth


class TestTerraformWriter:
    def test_writes_json_files_by_category(
        self, populated: TerraformSynthesizer, config: SynthesisConfig
    ) -> None:
        aws_iam_role(populated, "app", {"assume_role_policy": TrustPolicies.ec2_service()})
        written = TerraformWriter(config).write(populated)

        assert [path.name for path in written] == [
            "versions.tf.json",
            "provider.tf.json",
            "variables.tf.json",
            "network.tf.json",
            "identity.tf.json",
            "outputs.tf.json",
        ]
        network = json.loads((config.output_dir / "network.tf.json").read_text())
        assert set(network["resource"]) == {"aws_vpc", "aws_subnet"}
        versions = json.loads((config.output_dir / "versions.tf.json").read_text())
        assert versions["terraform"]["required_version"] == ">= 1.5.0"

    def test_flat_layout_writes_main_file(
        self, populated: TerraformSynthesizer, temp_output_dir: Path
    ) -> None:
        config = SynthesisConfig(output_dir=temp_output_dir, group_by_category=False)
        written = TerraformWriter(config).write(populated)
        names = [path.name for path in written]
        assert "main.tf.json" in names
        assert "network.tf.json" not in names
        main = json.loads((temp_output_dir / "main.tf.json").read_text())
        assert main["resource"]["aws_subnet"]["app"]["vpc_id"] == "${aws_vpc.main.id}"

    def test_output_dir_override(
        self, populated: TerraformSynthesizer, config: SynthesisConfig, tmp_path: Path
    ) -> None:
        target = tmp_path / "nested" / "out"
        TerraformWriter(config).write(populated, target)
        assert (target / "outputs.tf.json").exists()
        assert not config.output_dir.exists()

    def test_empty_synthesizer_writes_nothing(
        self, synth: TerraformSynthesizer, config: SynthesisConfig
    ) -> None:
        assert TerraformWriter(config).write(synth) == []

    def test_json_files_merge_back_to_synthesis(
        self, populated: TerraformSynthesizer, config: SynthesisConfig
    ) -> None:
        merged: dict = {}
        for path in TerraformWriter(config).write(populated):
            for block, body in json.loads(path.read_text()).items():
                if block == "resource":
                    merged.setdefault(block, {}).update(body)
                else:
                    merged[block] = body
        assert merged == populated.synthesis


class TestHclRendering:
    @pytest.fixture
    def writer(self, tmp_path: Path) -> TerraformWriter:
        return TerraformWriter(SynthesisConfig(output_dir=tmp_path, output_format=OutputFormat.HCL))

    def test_resource_block(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {
                "resource": {
                    "aws_vpc": {"main": {"cidr_block": "10.0.0.0/16", "tags": {"Name": "main"}}}
                }
            }
        )
        assert content == (
            'resource "aws_vpc" "main" {\n'
            '  cidr_block = "10.0.0.0/16"\n'
            "  tags = {\n"
            '    Name = "main"\n'
            "  }\n"
            "}\n"
        )

    def test_repeated_blocks(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {
                "resource": {
                    "aws_route_table": {
                        "rt": {
                            "vpc_id": "vpc-1",
                            "route": [
                                {"cidr_block": "0.0.0.0/0", "gateway_id": "igw-1"},
                                {"cidr_block": "10.1.0.0/16", "vpc_peering_connection_id": "p"},
                            ],
                        }
                    }
                }
            }
        )
        assert content.count("  route {") == 2
        assert '    gateway_id = "igw-1"' in content

    def test_variable_type_is_unquoted(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl({"variable": {"env": {"type": "string", "default": "dev"}}})
        assert 'variable "env" {' in content
        assert "  type = string" in content
        assert '  default = "dev"' in content

    def test_required_providers_block(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {
                "terraform": {
                    "required_version": ">= 1.5.0",
                    "required_providers": {
                        "aws": {"source": "hashicorp/aws", "version": "~> 5.0"}
                    },
                }
            }
        )
        assert content.startswith("terraform {\n")
        assert "  required_providers {" in content
        assert '    aws = {\n      source = "hashicorp/aws"' in content

    def test_value_formatting(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {
                "output": {
                    "values": {
                        "value": [1, True, None, 'say "hi"'],
                        "description": "line one\nline two",
                    }
                }
            }
        )
        assert '  value = [1, true, null, "say \\"hi\\""]' in content
        assert "  description = <<-EOT\nline one\nline two\nEOT" in content

    def test_output_map_value_is_an_argument(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {"output": {"ids": {"value": {"vpc": "${aws_vpc.main.id}"}}}}
        )
        assert content == (
            'output "ids" {\n'
            "  value = {\n"
            '    vpc = "${aws_vpc.main.id}"\n'
            "  }\n"
            "}\n"
        )

    def test_output_list_of_maps_is_an_argument(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl({"output": {"rules": {"value": [{"port": 443}]}}})
        assert "  value = [{\n    port = 443\n  }]" in content
        assert "  value {" not in content

    def test_variable_map_default_is_an_argument(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {"variable": {"tags": {"type": "map(string)", "default": {"Team": "core"}}}}
        )
        assert "  type = map(string)" in content
        assert '  default = {\n    Team = "core"\n  }' in content

    def test_non_identifier_keys_render_as_map(self, writer: TerraformWriter) -> None:
        content = writer.render_hcl(
            {"provider": {"aws": {"default_tags": {"tags": {"kubernetes.io/role": "x"}}}}}
        )
        assert '      "kubernetes.io/role" = "x"' in content

    def test_written_hcl_parses(
        self, populated: TerraformSynthesizer, temp_output_dir: Path
    ) -> None:
        config = SynthesisConfig(output_dir=temp_output_dir, output_format=OutputFormat.HCL)
        written = TerraformWriter(config).write(populated)
        assert [path.name for path in written] == [
            "versions.tf",
            "provider.tf",
            "variables.tf",
            "network.tf",
            "outputs.tf",
        ]
        with (temp_output_dir / "network.tf").open() as f:
            parsed = hcl2.load(f)
        assert len(parsed["resource"]) == 2
        with (temp_output_dir / "outputs.tf").open() as f:
            assert len(hcl2.load(f)["output"]) == 1

    def test_security_group_rules_render_as_blocks(
        self, synth: TerraformSynthesizer, writer: TerraformWriter
    ) -> None:
        aws_security_group(
            synth,
            "web",
            {"ingress_rules": [{"from_port": 443, "to_port": 443, "protocol": "tcp"}]},
        )
        content = writer.render_hcl({"resource": synth.synthesis["resource"]})
        assert "  ingress {" in content
        assert "    cidr_blocks = []" in content
        assert "    self = false" in content
