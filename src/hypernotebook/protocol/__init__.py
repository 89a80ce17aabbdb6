"""Directive protocol: extraction of component records and tree assembly."""

from hypernotebook.protocol.extractor import extract_components, parse_response, strip_directives
from hypernotebook.protocol.records import ComponentRecord
from hypernotebook.protocol.tree import get_children, get_roots

__all__ = [
    "ComponentRecord",
    "extract_components",
    "get_children",
    "get_roots",
    "parse_response",
    "strip_directives",
]
