#!/usr/bin/env python3
"""
KUBECHARTER CONDITIONS - Feature Toggle Policy
----------------------------------------------
The ConditionalWrapper acts as a 'Gatekeeper'. It decides, from the
resource descriptor alone, whether a rendered manifest is essential
(always emitted), optional (wrapped in a feature flag), or elided.

The policy is an ordered table: the first matching rule wins.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from kubecharter.core.models import ResourceDescriptor
from kubecharter.templating import directives
from kubecharter.templating.directives import Guard

logger = logging.getLogger("kubecharter.templater")

API_CERT_MANAGER = "cert-manager.io/v1"
API_MONITORING = "monitoring.coreos.com/v1"

RBAC_KINDS = frozenset({
    "ServiceAccount", "Role", "ClusterRole", "RoleBinding", "ClusterRoleBinding",
})
WEBHOOK_KINDS = frozenset({
    "ValidatingWebhookConfiguration", "MutatingWebhookConfiguration",
})

# Actions a rule can resolve to
DROP = "drop"
WRAP = "wrap"
KEEP = "keep"
ANNOTATE = "annotate"


@dataclass(frozen=True)
class WrapRule:
    """
    One row of the decision table.
    `name_markers` matches when the resource name contains ANY of them.
    """
    kinds: FrozenSet[str]
    action: str
    api_version: Optional[str] = None
    name_markers: Tuple[str, ...] = ()
    guard: Optional[Guard] = None
    trailing_newline: bool = True

    def matches(self, resource: ResourceDescriptor) -> bool:
        if resource.get_kind() not in self.kinds:
            return False
        if self.api_version is not None and resource.get_api_version() != self.api_version:
            return False
        if self.name_markers:
            return any(marker in resource.get_name() for marker in self.name_markers)
        return True


DEFAULT_RULES: List[WrapRule] = [
    WrapRule(frozenset({"Namespace"}), DROP),
    WrapRule(frozenset({"CustomResourceDefinition"}), WRAP, guard=directives.CRD),
    WrapRule(frozenset({"Certificate"}), WRAP, api_version=API_CERT_MANAGER,
             name_markers=("metrics",), guard=directives.CERT_MANAGER_METRICS),
    WrapRule(frozenset({"Certificate"}), WRAP, api_version=API_CERT_MANAGER,
             guard=directives.CERT_MANAGER, trailing_newline=False),
    WrapRule(frozenset({"Issuer"}), WRAP, api_version=API_CERT_MANAGER,
             guard=directives.CERT_MANAGER, trailing_newline=False),
    WrapRule(frozenset({"ServiceMonitor"}), WRAP, api_version=API_MONITORING,
             guard=directives.PROMETHEUS, trailing_newline=False),
    # Helper roles are convenience RBAC for CRD management
    WrapRule(RBAC_KINDS, WRAP, name_markers=("admin-role", "editor-role", "viewer-role"),
             guard=directives.RBAC_HELPERS),
    WrapRule(RBAC_KINDS, WRAP, name_markers=("metrics",), guard=directives.METRICS),
    # Controller, leader-election and manager RBAC must always exist
    WrapRule(RBAC_KINDS, KEEP),
    WrapRule(WEBHOOK_KINDS, ANNOTATE),
    WrapRule(frozenset({"Service"}), WRAP, name_markers=("metrics",), guard=directives.METRICS),
    WrapRule(frozenset({"Service"}), KEEP),
]


class ConditionalWrapper:
    """
    Evaluates the decision table against a descriptor and applies the
    winning action to the document text.
    """

    ANNOTATION_PATTERN = re.compile(r'^([ \t]*)cert-manager\.io/inject-ca-from:[ \t]*\S.*$')

    def __init__(self, rules: Optional[List[WrapRule]] = None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def resolve(self, resource: ResourceDescriptor) -> Optional[WrapRule]:
        """First matching rule, or None when the default (keep) applies."""
        for rule in self.rules:
            if rule.matches(resource):
                return rule
        return None

    def wrap(self, text: str, resource: ResourceDescriptor) -> str:
        rule = self.resolve(resource)
        if rule is None or rule.action == KEEP:
            return text

        if rule.action == DROP:
            logger.debug(f"Eliding {resource.get_kind()} '{resource.get_name()}'")
            return ""

        if rule.action == ANNOTATE:
            return self.guard_ca_injection(text)

        logger.debug(f"Wrapping {resource.get_kind()} '{resource.get_name()}' in {rule.guard.condition}")
        return rule.guard.wrap_document(text, trailing_newline=rule.trailing_newline)

    def guard_ca_injection(self, text: str) -> str:
        """
        Makes only the cert-manager CA injection annotation conditional,
        never the webhook configuration itself.
        """
        if "cert-manager.io/inject-ca-from" not in text:
            return text

        lines = text.split("\n")
        out: List[str] = []
        for i, line in enumerate(lines):
            match = self.ANNOTATION_PATTERN.match(line)
            if match and not directives.is_guarded(lines, i, directives.CERT_MANAGER):
                indent = match.group(1)
                out.extend(directives.CERT_MANAGER.wrap_lines([line], indent))
                continue
            out.append(line)
        return "\n".join(out)
