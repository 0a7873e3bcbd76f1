#!/usr/bin/env python3
"""
KUBECHARTER CORE MODELS
-----------------------
Defines the fundamental data structures used across the KubeCharter engine.
These models represent the lowest level of manifest abstraction: the
per-line structural record, the indentation block derived from it, and
the read-only identity of the resource being templated.

Author: KubeCharter Team
Date: 2026-10-17
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass
class LineRecord:
    """
    The atomic unit of a manifest as seen by the templater.

    A LineRecord is the structural view of one physical line: how deep it
    sits and whether it opens a sequence item. No YAML parsing is involved.
    """
    line_no: int            # Zero-based index into the split document
    indent: int             # Leading whitespace width (spaces and tabs)
    content: str            # The trimmed line
    is_list_item: bool = False   # True if the content starts with a '-' indicator
    raw_line: str = ""      # The original unmutated string


@dataclass(frozen=True)
class Block:
    """
    Half-open line range [start, end) covering a key line and its value body.
    """
    start: int
    end: int
    indent: str             # Leading whitespace prefix of the key line
    column: int             # Column of the key itself, past any list indicator

    @property
    def child_indent(self) -> str:
        return self.indent + " " * (self.column - len(self.indent)) + "  "

    @property
    def body_size(self) -> int:
        return self.end - self.start - 1


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Read-only identity of one Kubernetes manifest.

    Supplied by the caller for every document; the templater only reads it.
    """
    kind: str = ""
    api_version: str = ""
    name: str = ""
    namespace: str = ""

    def get_kind(self) -> str:
        return self.kind

    def get_api_version(self) -> str:
        return self.api_version

    def get_name(self) -> str:
        return self.name

    def get_namespace(self) -> str:
        return self.namespace

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "ResourceDescriptor":
        """
        Builds a descriptor from an already-loaded manifest mapping.
        Missing or non-string fields collapse to empty strings.
        """
        metadata = obj.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            metadata = {}

        def _text(value: Any) -> str:
            return value if isinstance(value, str) else ""

        return cls(
            kind=_text(obj.get("kind")),
            api_version=_text(obj.get("apiVersion")),
            name=_text(metadata.get("name")),
            namespace=_text(metadata.get("namespace")),
        )


@dataclass
class RenderedResource:
    """
    Outcome of templating one document of a multi-document build.

    Created by the ChartEngine and enriched by the templater and the
    validator sequentially.
    """
    descriptor: ResourceDescriptor
    source: str                            # The kustomize-rendered document
    content: str = ""                      # The templated output ('' when elided)
    status: str = "PENDING"                # TEMPLATED, ELIDED, INVALID or PARSE_ERROR
    relative_path: Optional[str] = None    # Location under the chart templates/ directory
    message: str = ""                      # Validator verdict or parse error

    def is_writable(self, force: bool = False) -> bool:
        allowed = ("TEMPLATED", "INVALID") if force else ("TEMPLATED",)
        return self.status in allowed and self.relative_path is not None
