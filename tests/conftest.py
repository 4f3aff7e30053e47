from pathlib import Path

import pytest

from pangea.models import SynthesisConfig
from pangea.synthesizer import TerraformSynthesizer


@pytest.fixture
def synth() -> TerraformSynthesizer:
    return TerraformSynthesizer()


@pytest.fixture
def config(tmp_path: Path) -> SynthesisConfig:
    return SynthesisConfig(output_dir=tmp_path / "terraform-output")


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    output_dir = tmp_path / "terraform-output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    path = tmp_path / "stack.yaml"
    path.write_text(
        """
providers:
  aws:
    region: us-east-1
resources:
  - type: aws_vpc
    name: main
    attributes:
      cidr_block: 10.0.0.0/16
      tags:
        Name: main
  - type: aws_subnet
    name: app
    attributes:
      vpc_id: {ref: aws_vpc.main.id}
      cidr_block: 10.0.1.0/24
      availability_zone: us-east-1a
  - type: aws_security_group
    name: web
    attributes:
      name: web
      vpc_id: {ref: aws_vpc.main.id}
      ingress_rules:
        - from_port: 443
          to_port: 443
          protocol: tcp
          cidr_blocks: [0.0.0.0/0]
  - type: aws_iam_role
    name: app
    attributes:
      name: app-role
      assume_role_policy:
        Version: "2012-10-17"
        Statement:
          - Effect: Allow
            Principal: {Service: ec2.amazonaws.com}
            Action: sts:AssumeRole
outputs:
  vpc_id:
    value: {ref: aws_vpc.main.id}
    description: Main VPC
"""
    )
    return path
