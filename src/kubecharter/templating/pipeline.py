#!/usr/bin/env python3
"""
KUBECHARTER TEMPLATING PIPELINE - The Chief Templater
-----------------------------------------------------
This is the central coordinator for turning one kustomize-rendered
manifest into a Helm template. It runs a fixed battery of text-to-text
passes in a strict order; each pass reads only the previous pass's output
and the read-only resource descriptor.

Order matters: conditional wrapping must see the untouched document, and
the args restructuring must run before the per-line cert-path guards so
the guards wrap the relocated copies.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
from typing import Callable, List, Tuple

from kubecharter.core.models import ResourceDescriptor
from kubecharter.rules.conditions import ConditionalWrapper
from kubecharter.templating.cleanup import collapse_blank_line_after_if
from kubecharter.templating.deployment import DeploymentTemplater
from kubecharter.templating.substitutions import ManifestSubstitutions

logger = logging.getLogger("kubecharter.templater")

Pass = Callable[[str, ResourceDescriptor], str]


class HelmTemplater:
    """
    The Orchestrator: ensures that wrapping, substitution and block
    surgery happen in a strictly defined, idempotent order.
    """

    def __init__(self, project_name: str):
        """
        Args:
            project_name: The kubebuilder project identifier; used to
                recognize hardcoded names ('<project>-system', issuers,
                metrics services) that must be genericized.
        """
        self.project_name = project_name
        self.wrapper = ConditionalWrapper()
        self.substitutions = ManifestSubstitutions(project_name)
        self.deployment = DeploymentTemplater()

    def passes(self) -> List[Tuple[str, Pass]]:
        """The ordered pass battery as (name, transform) pairs."""
        subs = self.substitutions
        return [
            ("conditional-wrap", self.wrapper.wrap),
            ("namespace", subs.substitute_namespace),
            ("servicemonitor-name", subs.template_service_monitor_name),
            ("managed-by", lambda text, _: subs.template_managed_by(text)),
            ("deployment", self._template_deployment),
            ("cleanup", lambda text, _: collapse_blank_line_after_if(text)),
        ]

    def apply(self, text: str, resource: ResourceDescriptor) -> str:
        """
        Converts one manifest to Helm template syntax.
        Returns an empty string when the resource is elided entirely.
        """
        for name, transform in self.passes():
            rewritten = transform(text, resource)
            if rewritten != text:
                logger.debug(f"[{resource.get_kind()}/{resource.get_name()}] pass '{name}' rewrote text")
            text = rewritten
        return text

    def _template_deployment(self, text: str, resource: ResourceDescriptor) -> str:
        if resource.get_kind() != "Deployment":
            return text

        deployment = self.deployment
        for transform in (
            deployment.template_image,
            deployment.template_env,
            deployment.template_pod_security_context,
            deployment.template_container_security_context,
            deployment.template_resources,
            deployment.template_controller_manager_args,
            deployment.guard_cert_path_args,
            deployment.guard_volumes,
        ):
            text = transform(text)
        return text
