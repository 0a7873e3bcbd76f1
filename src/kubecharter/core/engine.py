#!/usr/bin/env python3
"""
KUBECHARTER ENGINE - The High Orchestrator
------------------------------------------
The ChartEngine manages the lifecycle of a kustomize build output on its
way into a Helm chart: split into documents, identify each resource,
template it, validate it, and lay it out under the chart's templates/
directory with atomic writes.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from ruamel.yaml import YAML, YAMLError

from kubecharter.core.models import RenderedResource, ResourceDescriptor
from kubecharter.rules.conditions import RBAC_KINDS, WEBHOOK_KINDS
from kubecharter.templating.lexer import KubeLexer
from kubecharter.templating.pipeline import HelmTemplater
from kubecharter.validator.validator import TemplateValidator

logger = logging.getLogger("kubecharter.engine")


class ChartEngine:
    """
    Principal Orchestrator for kustomize-to-Helm conversion.
    Holds no per-document state; every document is processed independently.
    """

    def __init__(self, project_name: str, output_dir: Optional[str] = None):
        """
        Args:
            project_name: The kubebuilder project identifier.
            output_dir: The chart's templates/ directory; only needed to write.
        """
        self.project_name = project_name
        self.output_dir = Path(output_dir).resolve() if output_dir else None

        self.lexer = KubeLexer()
        self.templater = HelmTemplater(project_name)
        self.validator = TemplateValidator()
        self.yaml = YAML(typ='safe')

    def split_documents(self, text: str) -> List[str]:
        """
        Splits a multi-document stream on '---' lines. Each document keeps
        a single trailing newline; blank documents are dropped.
        """
        documents = []
        chunk: List[str] = []
        for line in text.split("\n") + ["---"]:
            if line.strip() == "---":
                if any(part.strip() for part in chunk):
                    documents.append("\n".join(chunk).strip("\n") + "\n")
                chunk = []
                continue
            chunk.append(line)
        return documents

    def render(self, text: str) -> List[RenderedResource]:
        """
        Templates every document of a build output.
        Parse failures are recorded per document and never abort the batch.
        """
        text = self.lexer.normalize(text)
        resources = []
        used_paths: Set[str] = set()

        for document in self.split_documents(text):
            try:
                obj = self.yaml.load(document)
            except YAMLError as e:
                logger.error(f"Unable to parse document: {str(e)}")
                resources.append(RenderedResource(
                    descriptor=ResourceDescriptor(), source=document,
                    status="PARSE_ERROR", message=str(e)
                ))
                continue

            if obj is None:
                # Comment-only document
                continue
            if not isinstance(obj, dict):
                resources.append(RenderedResource(
                    descriptor=ResourceDescriptor(), source=document,
                    status="PARSE_ERROR", message="Document is not a mapping."
                ))
                continue

            descriptor = ResourceDescriptor.from_object(obj)
            resource = RenderedResource(descriptor=descriptor, source=document)
            resource.content = self.templater.apply(document, descriptor)

            if not resource.content.strip():
                resource.status = "ELIDED"
                resource.message = f"{descriptor.get_kind()} is provided by the Helm release."
            else:
                valid, message = self.validator.validate(resource.content)
                resource.status = "TEMPLATED" if valid else "INVALID"
                resource.message = message
                resource.relative_path = self._relative_path(descriptor, used_paths)

            resources.append(resource)

        logger.info(f"Rendered {len(resources)} document(s) for project '{self.project_name}'")
        return resources

    def write(self, resources: List[RenderedResource], dry_run: bool = False,
              force: bool = False) -> List[Path]:
        """
        Writes every writable resource under output_dir.
        With dry_run, returns the target paths without touching the disk.
        """
        if self.output_dir is None:
            raise ValueError("ChartEngine was created without an output directory.")

        targets = []
        for resource in resources:
            if not resource.is_writable(force=force):
                continue
            target = self.output_dir / resource.relative_path
            if not dry_run:
                target.parent.mkdir(parents=True, exist_ok=True)
                self._atomic_write(target, resource.content)
            targets.append(target)

        if not dry_run:
            logger.info(f"Wrote {len(targets)} template(s) to {self.output_dir}")
        return targets

    def generate_summary(self, resources: List[RenderedResource]) -> Dict[str, Any]:
        """Per-status counts for the final report."""
        summary: Dict[str, Any] = {
            "total_documents": len(resources),
            "templated": sum(1 for r in resources if r.status == "TEMPLATED"),
            "elided": sum(1 for r in resources if r.status == "ELIDED"),
            "invalid": sum(1 for r in resources if r.status == "INVALID"),
            "parse_errors": sum(1 for r in resources if r.status == "PARSE_ERROR"),
        }
        summary["summary_timestamp"] = time.strftime("%Y-%m-%d %H:%M:%S")
        return summary

    def _group(self, descriptor: ResourceDescriptor) -> str:
        kind = descriptor.get_kind()
        name = descriptor.get_name()
        if kind == "CustomResourceDefinition":
            return "crd"
        if kind in RBAC_KINDS:
            return "rbac"
        if kind == "Deployment":
            return "manager"
        if kind in WEBHOOK_KINDS or (kind == "Service" and "webhook" in name):
            return "webhook"
        if kind in ("Certificate", "Issuer"):
            return "cert-manager"
        if kind == "ServiceMonitor":
            return "monitoring"
        if kind == "Service" and "metrics" in name:
            return "metrics"
        return "extras"

    def _relative_path(self, descriptor: ResourceDescriptor, used_paths: Set[str]) -> str:
        """'<group>/<name>.yaml', with the project prefix dropped from the name."""
        name = descriptor.get_name() or descriptor.get_kind().lower() or "resource"
        prefix = f"{self.project_name}-"
        if name.startswith(prefix) and len(name) > len(prefix):
            name = name[len(prefix):]

        group = self._group(descriptor)
        path = f"{group}/{name}.yaml"
        if path in used_paths:
            path = f"{group}/{name}-{descriptor.get_kind().lower()}.yaml"
        used_paths.add(path)
        return path

    def _atomic_write(self, target_path: Path, content: str):
        if not os.access(target_path.parent, os.W_OK):
            raise PermissionError(f"No write access to {target_path.parent}")
        temp_file = target_path.with_suffix('.kubecharter.tmp')
        try:
            temp_file.write_text(content, encoding='utf-8')
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed: {str(e)}")
