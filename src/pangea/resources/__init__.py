from pangea.resources.base import AttributeBlock, ResourceAttributes, declare_resource
from pangea.resources.reference import ResourceReference
from pangea.resources.registry import get_builder, register, registered_types

__all__ = [
    "AttributeBlock",
    "ResourceAttributes",
    "ResourceReference",
    "declare_resource",
    "get_builder",
    "register",
    "registered_types",
]
