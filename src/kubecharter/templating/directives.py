#!/usr/bin/env python3
"""
KUBECHARTER DIRECTIVES - Guard Vocabulary
-----------------------------------------
The templater only knows Helm directives as literal strings: the ones it
writes and the ones it scans for. This module owns both directions, so a
pass that inserts a guard and the probe that detects it can never drift.

Author: KubeCharter Team
Date: 2026-10-17
"""

import functools
from dataclasses import dataclass
from typing import Callable, List, Tuple

END = "{{- end }}"
ELSE = "{{- else }}"
IF_PREFIX = "{{- if "

RELEASE_NAMESPACE = "{{ .Release.Namespace }}"
RELEASE_SERVICE = "{{ .Release.Service }}"
CHART_NAME = '{{ include "chart.name" . }}'
NAMESPACE_NAME = '{{ include "chart.namespaceName" . }}'


def service_name(suffix: str) -> str:
    """Lookup expression for a release-scoped Service name."""
    return '{{ include "chart.serviceName" (dict "suffix" "%s" "context" .) }}' % suffix


@dataclass(frozen=True)
class Guard:
    """
    A named boolean (or AND-composite) switch rendered as an if/end pair.
    Guard(("certManager.enable", "metrics.enable")).open ->
        {{- if and .Values.certManager.enable .Values.metrics.enable }}
    """
    flags: Tuple[str, ...]

    @property
    def condition(self) -> str:
        values = [f".Values.{flag}" for flag in self.flags]
        if len(values) == 1:
            return values[0]
        return "and " + " ".join(values)

    @property
    def open(self) -> str:
        return f"{IF_PREFIX}{self.condition} }}}}"

    @property
    def close(self) -> str:
        return END

    def wrap_document(self, text: str, trailing_newline: bool = True) -> str:
        """Encloses a whole rendered document; a no-op if already enclosed."""
        if is_wrapped(text, self):
            return text
        suffix = "\n" if trailing_newline else ""
        return f"{self.open}\n{text}{self.close}{suffix}"

    def wrap_lines(self, lines: List[str], indent: str) -> List[str]:
        return [indent + self.open] + lines + [indent + self.close]


CRD = Guard(("crd.enable",))
CERT_MANAGER = Guard(("certManager.enable",))
METRICS = Guard(("metrics.enable",))
CERT_MANAGER_METRICS = Guard(("certManager.enable", "metrics.enable"))
PROMETHEUS = Guard(("prometheus.enable",))
RBAC_HELPERS = Guard(("rbacHelpers.enable",))


# --- Re-entry probes -------------------------------------------------------

def is_wrapped(text: str, guard: Guard) -> bool:
    """True if the document already opens with this guard."""
    return text.split("\n", 1)[0].strip() == guard.open


def is_guarded(lines: List[str], index: int, guard: Guard) -> bool:
    """True if the line directly above `index` is this guard's open directive."""
    return index > 0 and lines[index - 1].strip() == guard.open


def already_templated(lines: List[str], start: int, stop: int, marker: str) -> bool:
    """True if `marker` appears anywhere in lines[start:stop]."""
    stop = min(stop, len(lines))
    return any(marker in line for line in lines[start:stop])


def requires(*needles: str) -> Callable:
    """
    Pass decorator: the wrapped transform only runs when every trigger
    substring is present in the text; otherwise the text is returned as-is.
    """
    def decorator(transform: Callable) -> Callable:
        @functools.wraps(transform)
        def wrapper(self, text: str, *args, **kwargs) -> str:
            if not all(needle in text for needle in needles):
                return text
            return transform(self, text, *args, **kwargs)
        return wrapper
    return decorator
