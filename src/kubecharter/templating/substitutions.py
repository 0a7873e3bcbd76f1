#!/usr/bin/env python3
"""
KUBECHARTER SUBSTITUTIONS - Literal Rewrites
--------------------------------------------
Passes that swap hardcoded, project-specific strings for Helm lookups:
namespaces, certificate DNS names, ServiceMonitor names and the
managed-by label. None of them need block structure; they are plain
string or line-anchored regex replacements.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
import re

from kubecharter.core.models import ResourceDescriptor
from kubecharter.templating import directives

logger = logging.getLogger("kubecharter.templater")

METRICS_SERVICE_SUFFIX = "controller-manager-metrics-service"
METRICS_MONITOR_SUFFIX = "controller-manager-metrics-monitor"


class ManifestSubstitutions:
    """
    Genericizes the names a kustomize build bakes in for one project.
    """

    MANAGED_BY_PATTERN = re.compile(
        r'^([ \t]*)app\.kubernetes\.io/managed-by:[ \t]+kustomize[ \t]*$', re.MULTILINE
    )

    def __init__(self, project_name: str):
        self.project_name = project_name
        self.hardcoded_namespace = f"{project_name}-system"
        self.hardcoded_issuer = f"{project_name}-selfsigned-issuer"
        self.hardcoded_metrics_service = f"{project_name}-{METRICS_SERVICE_SUFFIX}"

    def substitute_namespace(self, text: str, resource: ResourceDescriptor) -> str:
        """
        Replaces '<project>-system' everywhere, including the Namespace
        resource's own name, so it becomes the release namespace.
        """
        if self.hardcoded_namespace in text:
            text = text.replace(self.hardcoded_namespace, directives.RELEASE_NAMESPACE)

        if resource.get_kind() == "Certificate":
            text = self.substitute_certificate_dns_names(text, resource)
        return text

    def substitute_certificate_dns_names(self, text: str, resource: ResourceDescriptor) -> str:
        if "metrics" in resource.get_name():
            # Metrics certificates must point at the release-scoped metrics service
            service = directives.service_name(METRICS_SERVICE_SUFFIX)
            fqdn = f"{service}.{directives.NAMESPACE_NAME}.svc"

            text = text.replace("SERVICE_NAME.SERVICE_NAMESPACE.svc.cluster.local", fqdn + ".cluster.local")
            text = text.replace("SERVICE_NAME.SERVICE_NAMESPACE.svc", fqdn)
            text = text.replace(self.hardcoded_metrics_service, service)

        return text.replace(self.hardcoded_issuer, f"{directives.CHART_NAME}-selfsigned-issuer")

    def template_service_monitor_name(self, text: str, resource: ResourceDescriptor) -> str:
        """
        '<project>-controller-manager-metrics-monitor' ->
        '{{ include "chart.name" . }}-controller-manager-metrics-monitor'

        Names without the project prefix are custom and stay intact, except
        for the bare conventional suffix itself.
        """
        if resource.get_kind() != "ServiceMonitor":
            return text

        name = resource.get_name()
        prefix = f"{self.project_name}-"
        if name.startswith(prefix) and len(name) > len(prefix):
            suffix = name[len(prefix):]
        elif name == METRICS_MONITOR_SUFFIX:
            suffix = name
        else:
            return text

        name_line = re.compile(r'^([ \t]*)name:[ \t]*' + re.escape(name) + r'[ \t]*$', re.MULTILINE)
        templated = f"{directives.CHART_NAME}-{suffix}"
        text, count = name_line.subn(lambda m: f"{m.group(1)}name: {templated}", text)
        if count:
            logger.debug(f"Templated ServiceMonitor name '{name}' ({count} line(s))")
        return text

    def template_managed_by(self, text: str) -> str:
        return self.MANAGED_BY_PATTERN.sub(
            lambda m: f"{m.group(1)}app.kubernetes.io/managed-by: {directives.RELEASE_SERVICE}", text
        )
