from __future__ import annotations

import importlib
from typing import Protocol, runtime_checkable

from .models import Document


@runtime_checkable
class ContainerBuilder(Protocol):
    """Produces the intermediate EPUB for a document.

    ``create`` returns the path of a file the caller may move or delete, or
    raises. The container layout itself lives outside this package.
    """

    def create(self, document: Document) -> str:
        ...


def load_builder(ref: str) -> ContainerBuilder:
    """Resolve ``package.module:attribute`` to a builder.

    The attribute may be a builder instance or a zero-argument factory/class.
    """
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Builder reference must look like 'module:attribute', got {ref!r}")
    obj = getattr(importlib.import_module(module_name), attr)
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "create")):
        obj = obj()
    if not isinstance(obj, ContainerBuilder):
        raise TypeError(f"{ref} does not provide a create(document) method")
    return obj
