from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pangea.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from pangea.resources.reference import ResourceReference
    from pangea.synthesizer import TerraformSynthesizer

ResourceBuilder = Callable[["TerraformSynthesizer", str, "dict[str, Any] | None"], "ResourceReference"]

_BUILDERS: dict[str, ResourceBuilder] = {}
_BUILTIN_PACKAGE = "pangea.resources.aws"


def register(resource_type: str) -> Callable[[ResourceBuilder], ResourceBuilder]:
    def decorator(builder: ResourceBuilder) -> ResourceBuilder:
        _BUILDERS[resource_type] = builder
        return builder

    return decorator


def _load_builtin_builders() -> None:
    importlib.import_module(_BUILTIN_PACKAGE)


def get_builder(resource_type: str) -> ResourceBuilder:
    _load_builtin_builders()
    try:
        return _BUILDERS[resource_type]
    except KeyError:
        raise UnknownResourceTypeError(resource_type) from None


def registered_types() -> list[str]:
    _load_builtin_builders()
    return sorted(_BUILDERS)
