"""Declarative manifests: a YAML or JSON list of resources to synthesize.

A manifest looks like::

    providers:
      aws:
        region: us-east-1
    resources:
      - type: aws_vpc
        name: main
        attributes:
          cidr_block: 10.0.0.0/16
      - type: aws_subnet
        name: app
        attributes:
          vpc_id: {ref: aws_vpc.main.id}
          cidr_block: 10.0.1.0/24
          availability_zone: us-east-1a
    outputs:
      vpc_id:
        value: {ref: aws_vpc.main.id}

``{ref: type.name.attribute}`` resolves to the interpolation string of a
resource declared earlier in the same manifest.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pangea.errors import ManifestError
from pangea.models import SynthesisConfig
from pangea.resources.base import format_validation_errors
from pangea.synthesizer import TerraformSynthesizer

logger = logging.getLogger(__name__)

REF_KEY = "ref"


class _ManifestModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ResourceDeclaration(_ManifestModel):
    type: str
    name: str = Field(pattern=r"^[a-zA-Z_][a-zA-Z0-9_-]*$")
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


class OutputDeclaration(_ManifestModel):
    value: Any
    description: str | None = None
    sensitive: bool = False


class TerraformSettings(_ManifestModel):
    required_version: str | None = None
    required_providers: dict[str, dict[str, str]] = Field(default_factory=dict)


class Manifest(_ManifestModel):
    terraform: TerraformSettings | None = None
    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    variables: dict[str, dict[str, Any]] = Field(default_factory=dict)
    resources: list[ResourceDeclaration] = Field(default_factory=list)
    outputs: dict[str, OutputDeclaration] = Field(default_factory=dict)


def load_manifest(path: Path) -> Manifest:
    try:
        text = path.read_text()
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ManifestError(f"Cannot parse manifest {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must contain a mapping at the top level")

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        details = "; ".join(format_validation_errors(e))
        raise ManifestError(f"Invalid manifest {path}: {details}") from e

    logger.debug("Loaded manifest %s with %d resources", path, len(manifest.resources))
    return manifest


def resolve_references(value: Any, synth: TerraformSynthesizer) -> Any:
    if isinstance(value, dict):
        if set(value) == {REF_KEY}:
            return _resolve_ref(value[REF_KEY], synth)
        return {key: resolve_references(item, synth) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_references(item, synth) for item in value]
    return value


def _resolve_ref(expression: Any, synth: TerraformSynthesizer) -> str:
    if not isinstance(expression, str) or expression.count(".") != 2:
        raise ManifestError(
            f"Reference {expression!r} must have the form 'resource_type.name.attribute'"
        )
    resource_type, name, attribute = expression.split(".")
    reference = synth.references.get(f"{resource_type}.{name}")
    if reference is None:
        raise ManifestError(
            f"Reference '{expression}' points to undeclared resource '{resource_type}.{name}'"
        )
    return reference.ref(attribute)


def synthesize(manifest: Manifest, config: SynthesisConfig | None = None) -> TerraformSynthesizer:
    """Declare everything in ``manifest`` on a fresh synthesizer.

    Attribute and synthesis errors propagate unchanged so callers can report
    the violated rule.
    """
    synth = TerraformSynthesizer()

    settings = manifest.terraform or TerraformSettings()
    required_providers = dict(settings.required_providers)
    required_version = settings.required_version
    if config is not None:
        required_version = required_version or config.terraform_version
        required_providers.setdefault(
            "aws", {"source": "hashicorp/aws", "version": config.aws_provider_version}
        )
    synth.terraform(required_version=required_version, required_providers=required_providers)

    providers = {name: dict(values) for name, values in manifest.providers.items()}
    if config is not None and config.region:
        providers.setdefault("aws", {}).setdefault("region", config.region)
    for provider_name, provider_config in providers.items():
        synth.provider(provider_name, **provider_config)

    for variable_name, variable_config in manifest.variables.items():
        synth.variable(variable_name, **variable_config)

    for declaration in manifest.resources:
        attributes = resolve_references(declaration.attributes, synth)
        synth.declare(declaration.type, declaration.name, attributes)

    for output_name, output in manifest.outputs.items():
        synth.output(
            output_name,
            resolve_references(output.value, synth),
            description=output.description,
            sensitive=output.sensitive,
        )

    logger.info("Synthesized %d resources", synth.resource_count)
    return synth
