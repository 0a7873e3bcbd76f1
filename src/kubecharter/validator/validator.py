#!/usr/bin/env python3
"""
KUBECHARTER VALIDATOR - The Judge
---------------------------------
The Validator is the final safety gate in the KubeCharter pipeline.
Templated output is not YAML until Helm renders it, so the validator
approximates a render: directive-only lines vanish, inline expressions
collapse to a placeholder scalar, and what remains must parse.

Author: KubeCharter Team
Date: 2026-10-17
"""

import logging
import re
from typing import Tuple

from ruamel.yaml import YAML, YAMLError

# Standardized logging for audit trails
logger = logging.getLogger("kubecharter.validator")


class TemplateValidator:
    """
    Checks that a templated manifest stays structurally valid YAML.
    """

    DIRECTIVE_LINE = re.compile(r'^[ \t]*\{\{.*\}\}[ \t]*$')
    INLINE_EXPRESSION = re.compile(r'\{\{.*?\}\}')
    PLACEHOLDER = "templated"

    def __init__(self):
        self.yaml = YAML(typ='safe')

    def strip_directives(self, text: str) -> str:
        """
        Approximates a Helm render with every branch kept: control lines are
        removed, value expressions are replaced by a plain scalar.
        """
        kept = [line for line in text.split("\n") if not self.DIRECTIVE_LINE.match(line)]
        return self.INLINE_EXPRESSION.sub(self.PLACEHOLDER, "\n".join(kept))

    def validate(self, text: str) -> Tuple[bool, str]:
        """
        Returns (True, message) when the stripped template parses,
        otherwise (False, 'STRUCTURE_ERROR:L<line>:C<col>:<problem>').
        """
        if not text.strip():
            return True, "Empty template: nothing to validate."

        try:
            list(self.yaml.load_all(self.strip_directives(text)))
        except YAMLError as e:
            mark = getattr(e, 'problem_mark', None) or getattr(e, 'context_mark', None)
            logger.warning(f"Templated output failed to parse: {e}")
            if mark:
                return False, f"STRUCTURE_ERROR:L{mark.line + 1}:C{mark.column + 1}:{str(e)}"
            return False, f"STRUCTURE_ERROR:{str(e)}"

        return True, "Template passes structural integrity check."
