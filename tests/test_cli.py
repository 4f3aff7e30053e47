import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pangea.cli import app
from pangea.version import __version__

runner = CliRunner()


@pytest.fixture
def invalid_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "invalid.yaml"
    path.write_text(
        "resources:\n"
        "  - type: aws_vpc\n"
        "    name: main\n"
        "    attributes:\n"
        "      cidr_block: 10.0.0.0/8\n"
    )
    return path


class TestCli:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"pangea version {__version__}" in result.output

    def test_synth_writes_category_files(self, manifest_file: Path, tmp_path: Path) -> None:
        output_dir = tmp_path / "out"
        result = runner.invoke(app, ["synth", str(manifest_file), "--output", str(output_dir)])

        assert result.exit_code == 0, result.output
        assert "Synthesized 4 resources" in result.output
        assert sorted(path.name for path in output_dir.iterdir()) == [
            "identity.tf.json",
            "network.tf.json",
            "outputs.tf.json",
            "provider.tf.json",
            "security.tf.json",
            "versions.tf.json",
        ]
        network = json.loads((output_dir / "network.tf.json").read_text())
        assert network["resource"]["aws_vpc"]["main"]["cidr_block"] == "10.0.0.0/16"

    def test_synth_flat_hcl(self, manifest_file: Path, tmp_path: Path) -> None:
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app,
            ["synth", str(manifest_file), "-o", str(output_dir), "--flat", "--format", "hcl"],
        )

        assert result.exit_code == 0, result.output
        main = (output_dir / "main.tf").read_text()
        assert 'resource "aws_vpc" "main" {' in main
        assert not (output_dir / "network.tf").exists()

    def test_synth_version_options(self, manifest_file: Path, tmp_path: Path) -> None:
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app,
            [
                "synth",
                str(manifest_file),
                "-o",
                str(output_dir),
                "--tf-version",
                ">= 1.8.0",
                "--aws-version",
                "~> 5.50",
            ],
        )

        assert result.exit_code == 0, result.output
        versions = json.loads((output_dir / "versions.tf.json").read_text())
        assert versions["terraform"]["required_version"] == ">= 1.8.0"
        assert versions["terraform"]["required_providers"]["aws"]["version"] == "~> 5.50"

    def test_synth_invalid_manifest_writes_nothing(
        self, invalid_manifest: Path, tmp_path: Path
    ) -> None:
        output_dir = tmp_path / "out"
        result = runner.invoke(app, ["synth", str(invalid_manifest), "-o", str(output_dir)])

        assert result.exit_code == 1
        assert "Invalid attributes for aws_vpc" in result.output
        assert "too large" in result.output
        assert not output_dir.exists()

    def test_synth_missing_manifest(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["synth", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Cannot read manifest" in result.output

    def test_validate(self, manifest_file: Path) -> None:
        result = runner.invoke(app, ["validate", str(manifest_file)])
        assert result.exit_code == 0, result.output
        assert "4 resources are valid" in result.output
        assert "aws_iam_role.app" in result.output

    def test_validate_invalid_manifest(self, invalid_manifest: Path) -> None:
        result = runner.invoke(app, ["validate", str(invalid_manifest)])
        assert result.exit_code == 1
        assert "Invalid attributes for aws_vpc" in result.output

    def test_resources_lists_registered_types(self) -> None:
        result = runner.invoke(app, ["resources"])
        assert result.exit_code == 0
        assert "aws_wafv2_web_acl" in result.output
        assert "messaging" in result.output
