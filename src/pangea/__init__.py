from pangea.errors import (
    AttributeValidationError,
    ManifestError,
    PangeaError,
    SynthesisError,
    UnknownResourceTypeError,
)
from pangea.resources.reference import ResourceReference
from pangea.synthesizer import TerraformSynthesizer
from pangea.version import __version__

__all__ = [
    "AttributeValidationError",
    "ManifestError",
    "PangeaError",
    "ResourceReference",
    "SynthesisError",
    "TerraformSynthesizer",
    "UnknownResourceTypeError",
    "__version__",
]
