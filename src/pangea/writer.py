from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from pangea.models import OutputFormat, SynthesisConfig, category_for
from pangea.synthesizer import TerraformSynthesizer

logger = logging.getLogger(__name__)

MAP_ATTRIBUTE_KEYS = {"tags", "tags_all", "dimensions", "default"}
MAP_CHILD_BLOCKS = {"required_providers"}
LABELED_BLOCKS = {"provider": 1, "variable": 1, "output": 1, "resource": 2}
# Arbitrary expressions: never rendered as nested blocks.
ARGUMENT_ONLY_KEYS = {"output": {"value"}, "variable": {"default"}}


class TerraformWriter:
    def __init__(self, config: SynthesisConfig) -> None:
        self.config = config

    def write(self, synth: TerraformSynthesizer, output_dir: Path | None = None) -> list[Path]:
        output_dir = output_dir or self.config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        document = synth.synthesis

        written: list[Path] = []
        for stem, block in (("versions", "terraform"), ("provider", "provider")):
            if block in document:
                written.append(self._write_file(output_dir, stem, {block: document[block]}))
        if "variable" in document:
            written.append(
                self._write_file(output_dir, "variables", {"variable": document["variable"]})
            )
        for stem, resources in self._group_resources(document.get("resource", {})).items():
            written.append(self._write_file(output_dir, stem, {"resource": resources}))
        if "output" in document:
            written.append(self._write_file(output_dir, "outputs", {"output": document["output"]}))

        logger.info("Wrote %d files to %s", len(written), output_dir)
        return written

    def _group_resources(
        self, resources: dict[str, dict[str, Any]]
    ) -> dict[str, dict[str, dict[str, Any]]]:
        if not self.config.group_by_category:
            return {"main": resources} if resources else {}

        grouped: dict[str, dict[str, dict[str, Any]]] = {}
        for resource_type, instances in resources.items():
            stem = category_for(resource_type).value
            grouped.setdefault(stem, {})[resource_type] = instances
        return grouped

    def _write_file(self, output_dir: Path, stem: str, document: dict[str, Any]) -> Path:
        path = output_dir / f"{stem}{self.config.file_suffix}"
        if self.config.output_format is OutputFormat.HCL:
            content = self.render_hcl(document)
        else:
            content = json.dumps(document, indent=2) + "\n"
        path.write_text(content)
        logger.debug("Wrote %s", path)
        return path

    def render_hcl(self, document: dict[str, Any]) -> str:
        lines: list[str] = []
        for block_type, body in document.items():
            depth = LABELED_BLOCKS.get(block_type, 0)
            for labels, block in self._labeled_blocks(body, depth):
                header = " ".join([block_type, *(f'"{label}"' for label in labels)])
                lines.append(f"{header} {{")
                for key, value in block.items():
                    if block_type == "variable" and key == "type":
                        lines.append(f"  type = {value}")
                    elif key in ARGUMENT_ONLY_KEYS.get(block_type, ()):
                        lines.append(f"  {key} = {self._format_value(value, 1)}")
                    else:
                        lines.extend(self._format_attribute(key, value, indent=1))
                lines.append("}")
                lines.append("")
        return "\n".join(lines)

    def _labeled_blocks(
        self, body: dict[str, Any], depth: int
    ) -> list[tuple[list[str], dict[str, Any]]]:
        if depth == 0:
            return [([], body)]
        blocks: list[tuple[list[str], dict[str, Any]]] = []
        for label, nested in body.items():
            for labels, block in self._labeled_blocks(nested, depth - 1):
                blocks.append(([label, *labels], block))
        return blocks

    def _format_attribute(self, key: str, value: Any, indent: int = 0) -> list[str]:
        prefix = "  " * indent
        lines: list[str] = []

        if isinstance(value, dict):
            if self._should_render_as_map_attribute(key, value):
                lines.append(f"{prefix}{key} = {self._format_value(value, indent)}")
            elif key in MAP_CHILD_BLOCKS:
                lines.append(f"{prefix}{key} {{")
                for k, v in value.items():
                    formatted = self._format_value(v, indent + 1)
                    lines.append(f"{prefix}  {self._format_hcl_key(k)} = {formatted}")
                lines.append(f"{prefix}}}")
            else:
                lines.append(f"{prefix}{key} {{")
                for k, v in value.items():
                    lines.extend(self._format_attribute(k, v, indent + 1))
                lines.append(f"{prefix}}}")
        elif isinstance(value, list) and value and all(isinstance(item, dict) for item in value):
            for item in value:
                lines.append(f"{prefix}{key} {{")
                for k, v in item.items():
                    lines.extend(self._format_attribute(k, v, indent + 1))
                lines.append(f"{prefix}}}")
        else:
            lines.append(f"{prefix}{key} = {self._format_value(value, indent)}")

        return lines

    def _format_value(self, value: Any, indent: int = 0) -> str:
        if value is None:
            return "null"
        elif isinstance(value, bool):
            return "true" if value else "false"
        elif isinstance(value, str):
            if "\n" in value:
                return f"<<-EOT\n{value}\nEOT"
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        elif isinstance(value, (int, float)):
            return str(value)
        elif isinstance(value, list):
            items = [self._format_value(item, indent) for item in value]
            return f"[{', '.join(items)}]"
        elif isinstance(value, dict):
            if not value:
                return "{}"
            inner = "  " * (indent + 1)
            items = [
                f"{inner}{self._format_hcl_key(k)} = {self._format_value(v, indent + 1)}"
                for k, v in value.items()
            ]
            return "{\n" + "\n".join(items) + "\n" + "  " * indent + "}"
        else:
            return json.dumps(value)

    def _should_render_as_map_attribute(self, key: str, value: dict[str, Any]) -> bool:
        if key in MAP_ATTRIBUTE_KEYS:
            return True
        if not value:
            return False
        return any(not self._is_valid_identifier(str(k)) for k in value)

    def _is_valid_identifier(self, value: str) -> bool:
        return bool(re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", value))

    def _format_hcl_key(self, key: str) -> str:
        if self._is_valid_identifier(key):
            return key
        escaped = key.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
