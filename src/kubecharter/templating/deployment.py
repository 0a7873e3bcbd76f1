#!/usr/bin/env python3
"""
KUBECHARTER DEPLOYMENT PASSES - Manager Container Surgery
---------------------------------------------------------
Block-level rewrites for the controller-manager Deployment. Each pass
locates a key with the indentation lexer, replaces its whole value block
with a values-driven equivalent, and refuses to run twice: before acting
it probes the neighbourhood for the marker it would insert.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from kubecharter.core.models import Block
from kubecharter.templating import directives
from kubecharter.templating.directives import Guard, already_templated, requires
from kubecharter.templating.lexer import (
    KubeLexer,
    find_key_line,
    key_column,
    key_content,
    key_indent,
    leading_whitespace,
    locate_block,
    locate_item,
)

logger = logging.getLogger("kubecharter.templater")

MANAGER_MARKER = "name: manager"
IMAGE_MARKER = ".Values.controllerManager.image.repository"
ARGS_MARKER = ".Values.controllerManager.args"

IMAGE_TEMPLATE = 'image: "{{ .Values.controllerManager.image.repository }}:{{ .Values.controllerManager.image.tag }}"'
PULL_POLICY_TEMPLATE = "imagePullPolicy: {{ .Values.controllerManager.image.pullPolicy }}"

METRICS_BIND_DISABLED = "- --metrics-bind-address=0"
METRICS_BIND_COMMENT = "# Bind to :0 to disable the controller-runtime managed metrics server"


@dataclass(frozen=True)
class ValuesField:
    """
    A manager field whose body is replaced by `.Values.controllerManager.<field>`,
    falling back to `empty` when the value is unset.
    """
    key: str
    field: str
    empty: str

    @property
    def marker(self) -> str:
        return f".Values.controllerManager.{self.field}"

    def render(self, lead: str, child: str) -> List[str]:
        return [
            f"{lead}{self.key}:",
            f"{child}{directives.IF_PREFIX}{self.marker} }}}}",
            f"{child}{{{{- toYaml {self.marker} | nindent {len(child)} }}}}",
            f"{child}{directives.ELSE}",
            f"{child}{self.empty}",
            f"{child}{directives.END}",
        ]

    def replace(self, lines: List[str], block: Block) -> str:
        """Swaps a located block for the rendering, keeping any '- ' lead."""
        lead = lines[block.start][:block.column]
        return _splice(lines, block, self.render(lead, block.child_indent))


ENV = ValuesField("env", "env", "[]")
RESOURCES = ValuesField("resources", "resources", "{}")
POD_SECURITY_CONTEXT = ValuesField("securityContext", "podSecurityContext", "{}")
CONTAINER_SECURITY_CONTEXT = ValuesField("securityContext", "securityContext", "{}")


@dataclass(frozen=True)
class SpanGuard:
    """
    Wraps every multi-line span matched by `pattern` in `guard`, at the
    indentation of the span's first line. Spans already preceded by the
    guard's open directive are left alone.
    """
    name: str
    triggers: Tuple[str, ...]
    pattern: "re.Pattern"
    guard: Guard

    def apply(self, text: str) -> str:
        if not all(trigger in text for trigger in self.triggers):
            return text
        return self.pattern.sub(self._wrap, text)

    def _wrap(self, match: "re.Match") -> str:
        preceding = match.string[:match.start()].split("\n")
        if len(preceding) >= 2 and preceding[-2].strip() == self.guard.open:
            return match.group(0)
        indent = match.group(1)
        logger.debug(f"Guarding {self.name} with {self.guard.condition}")
        return f"{indent}{self.guard.open}\n{match.group(0)}\n{indent}{self.guard.close}"


CERT_PATH_GUARDS = [
    SpanGuard(
        "webhook cert path arg", ("--webhook-cert-path",),
        re.compile(r'^([ \t]+)-[ \t]*--webhook-cert-path=.*$', re.MULTILINE),
        directives.CERT_MANAGER,
    ),
    SpanGuard(
        "metrics cert path arg", ("--metrics-cert-path",),
        re.compile(r'^([ \t]+)-[ \t]*--metrics-cert-path=.*$', re.MULTILINE),
        directives.CERT_MANAGER_METRICS,
    ),
]

VOLUME_GUARDS = [
    SpanGuard(
        "webhook volumeMount", ("webhook-certs", "/tmp/k8s-webhook-server/serving-certs"),
        re.compile(r'^([ \t]+)-[ \t]*mountPath:[ \t]*/tmp/k8s-webhook-server/serving-certs'
                   r'[\s\S]*?readOnly:[ \t]*true', re.MULTILINE),
        directives.CERT_MANAGER,
    ),
    SpanGuard(
        "webhook volume", ("webhook-certs", "secretName: webhook-server-cert"),
        re.compile(r'^([ \t]+)-[ \t]*name:[ \t]*webhook-certs'
                   r'[\s\S]*?secretName:[ \t]*webhook-server-cert', re.MULTILINE),
        directives.CERT_MANAGER,
    ),
    SpanGuard(
        "metrics volumeMount", ("metrics-certs", "/tmp/k8s-metrics-server/metrics-certs"),
        re.compile(r'^([ \t]+)-[ \t]*mountPath:[ \t]*/tmp/k8s-metrics-server/metrics-certs'
                   r'[\s\S]*?readOnly:[ \t]*true', re.MULTILINE),
        directives.CERT_MANAGER_METRICS,
    ),
    SpanGuard(
        "metrics volume", ("metrics-certs", "secretName: metrics-server-cert"),
        re.compile(r'^([ \t]+)-[ \t]*name:[ \t]*metrics-certs'
                   r'[\s\S]*?secretName:[ \t]*metrics-server-cert', re.MULTILINE),
        directives.CERT_MANAGER_METRICS,
    ),
]


def _splice(lines: List[str], block: Block, replacement: List[str]) -> str:
    return "\n".join(lines[:block.start] + replacement + lines[block.end:])


class DeploymentTemplater:
    """
    Exposes the manager container's image, env, resources, security
    contexts and args through values.yaml.
    """

    def __init__(self):
        self.lexer = KubeLexer()

    # --- Manager container scope --------------------------------------------

    def _manager_container(self, lines: List[str]) -> Optional[Block]:
        """The list item of the container named 'manager', if any."""
        index = next((i for i, line in enumerate(lines) if key_content(line) == MANAGER_MARKER), None)
        if index is None:
            return None
        return locate_item(lines, index)

    @staticmethod
    def _container_key(lines: List[str], container: Block, key: str) -> Optional[int]:
        """
        Index of a direct key of the container, whether it opens a block
        ('env:'), carries an inline value ('env: []') or leads the item ('- env:').
        """
        for i in range(container.start, container.end):
            if key_column(lines[i]) != container.column:
                continue
            content = key_content(lines[i])
            if content == f"{key}:" or content.startswith(f"{key}: "):
                return i
        return None

    # --- Image ---------------------------------------------------------------

    @requires(MANAGER_MARKER)
    def template_image(self, text: str) -> str:
        lines = text.split("\n")
        container = self._manager_container(lines)
        if container is None:
            return text
        index = self._container_key(lines, container, "image")
        if index is None or IMAGE_MARKER in lines[index]:
            return text

        block = locate_block(lines, index)
        # The old value (and any imagePullPolicy nested under it) is discarded
        remainder = lines[block.end:]
        if remainder and remainder[0].strip().startswith("imagePullPolicy:"):
            remainder = remainder[1:]

        logger.debug("Templated manager image reference")
        replacement = [
            lines[index][:block.column] + IMAGE_TEMPLATE,
            key_indent(lines[index]) + PULL_POLICY_TEMPLATE,
        ]
        return "\n".join(lines[:index] + replacement + remainder)

    # --- Values-backed blocks ------------------------------------------------

    @requires(MANAGER_MARKER)
    def template_env(self, text: str) -> str:
        lines = text.split("\n")
        container = self._manager_container(lines)
        if container is None:
            return text
        index = self._container_key(lines, container, "env")
        if index is None:
            return self._insert_env(lines, text)

        if already_templated(lines, index + 1, index + 2, ENV.marker):
            return text

        block = locate_block(lines, index, sequence=True)
        logger.debug(f"Templated env block ({block.body_size} line(s) replaced)")
        return ENV.replace(lines, block)

    def _insert_env(self, lines: List[str], text: str) -> str:
        """Adds a fresh env block right after the manager's name key."""
        for record in self.lexer.records(text):
            if key_content(record.raw_line) != MANAGER_MARKER:
                continue
            indent = key_indent(record.raw_line)
            at = record.line_no + 1
            logger.debug("Inserted env block into manager container")
            return "\n".join(lines[:at] + ENV.render(indent, indent + "  ") + lines[at:])
        return text

    @requires(MANAGER_MARKER, "resources:")
    def template_resources(self, text: str) -> str:
        lines = text.split("\n")
        container = self._manager_container(lines)
        if container is None:
            return text
        index = self._container_key(lines, container, "resources")
        if index is None:
            return text

        if already_templated(lines, index + 1, index + 2, RESOURCES.marker):
            return text

        block = locate_block(lines, index)
        logger.debug(f"Templated resources block ({block.body_size} line(s) replaced)")
        return RESOURCES.replace(lines, block)

    def _security_contexts(self, lines: List[str]) -> List[Tuple[Block, Optional[str]]]:
        """
        Every securityContext block paired with the line that follows it
        (None at end of document). A block directly followed by
        serviceAccountName belongs to the pod spec, not a container.
        """
        found = []
        index = find_key_line(lines, "securityContext:")
        while index is not None:
            block = locate_block(lines, index)
            follower = lines[block.end] if block.end < len(lines) else None
            found.append((block, follower))
            index = find_key_line(lines, "securityContext:", index + 1)
        return found

    @staticmethod
    def _is_pod_level(follower: Optional[str]) -> bool:
        return follower is not None and follower.strip().startswith("serviceAccountName:")

    @requires("securityContext:")
    def template_pod_security_context(self, text: str) -> str:
        lines = text.split("\n")
        for block, follower in self._security_contexts(lines):
            if not self._is_pod_level(follower):
                continue
            if already_templated(lines, block.start + 1, block.start + 2, POD_SECURITY_CONTEXT.marker):
                return text
            logger.debug("Templated pod securityContext")
            return POD_SECURITY_CONTEXT.replace(lines, block)
        return text

    @requires(MANAGER_MARKER, "securityContext:")
    def template_container_security_context(self, text: str) -> str:
        lines = text.split("\n")
        for block, follower in self._security_contexts(lines):
            if self._is_pod_level(follower):
                continue
            if already_templated(lines, block.start, block.end + 5, CONTAINER_SECURITY_CONTEXT.marker):
                return text
            logger.debug("Templated container securityContext")
            return CONTAINER_SECURITY_CONTEXT.replace(lines, block)
        return text

    # --- Args ----------------------------------------------------------------

    @requires(MANAGER_MARKER)
    def template_controller_manager_args(self, text: str) -> str:
        """
        Rebuilds the first args list as:
          metrics guard -> health probe -> values loop -> preserved cert paths
        Any other arg is superseded by .Values.controllerManager.args.
        """
        lines = text.split("\n")
        index = next((i for i, line in enumerate(lines) if key_content(line) == "args:"), None)
        if index is None:
            return text

        block = locate_block(lines, index, sequence=True)
        # The line after the block catches a loop directive sitting at the key column
        if already_templated(lines, index, block.end + 1, ARGS_MARKER):
            return text

        items = [line.rstrip("\r") for line in lines[index + 1:block.end] if line.strip()]
        first_item = next((line for line in items if line.strip().startswith("-")), None)
        if first_item is None:
            return text

        item_indent, _ = leading_whitespace(first_item)
        metrics_line = health_line = None
        preserved: List[str] = []
        for line in items:
            trimmed = line.strip()
            if "--metrics-bind-address" in trimmed:
                metrics_line = line
            elif "--health-probe-bind-address" in trimmed:
                health_line = line
            elif "--webhook-cert-path" in trimmed or "--metrics-cert-path" in trimmed:
                preserved.append(line)

        rebuilt = [lines[index]]
        if metrics_line is not None:
            metrics_indent, _ = leading_whitespace(metrics_line)
            rebuilt.extend([
                metrics_indent + directives.METRICS.open,
                metrics_line,
                metrics_indent + directives.ELSE,
                metrics_indent + METRICS_BIND_COMMENT,
                metrics_indent + METRICS_BIND_DISABLED,
                metrics_indent + directives.END,
            ])
        if health_line is not None:
            rebuilt.append(health_line)
        rebuilt.extend([
            item_indent + "{{- range " + ARGS_MARKER + " }}",
            item_indent + "- {{ . }}",
            item_indent + directives.END,
        ])
        rebuilt.extend(preserved)

        logger.debug(f"Restructured manager args ({len(items)} item line(s))")
        return _splice(lines, block, rebuilt)

    # --- Guards --------------------------------------------------------------

    def guard_cert_path_args(self, text: str) -> str:
        for span in CERT_PATH_GUARDS:
            text = span.apply(text)
        return text

    def guard_volumes(self, text: str) -> str:
        """Webhook mounts, webhook volumes, metrics mounts, metrics volumes."""
        for span in VOLUME_GUARDS:
            text = span.apply(text)
        return text
