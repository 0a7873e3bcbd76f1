#!/usr/bin/env python3
"""
KUBECHARTER CLEANUP - Final Tidy-Up
-----------------------------------
Substitutions can leave an empty line between a `{{- if ... }}` and the
content it guards, or between that content and `{{- end }}`. Collapsing
them keeps rendered templates diff-stable.

Author: KubeCharter Team
Date: 2026-10-17
"""

from kubecharter.templating import directives


def collapse_blank_line_after_if(text: str) -> str:
    lines = text.split("\n")
    out = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if directives.IF_PREFIX in line:
            out.append(line)
            # Skip one blank line after the if
            if i + 1 < len(lines) and not lines[i + 1].strip():
                i += 1
            i += 1
            continue
        if not line.strip() and i + 1 < len(lines) and directives.END in lines[i + 1]:
            i += 1
            continue
        out.append(line)
        i += 1
    return "\n".join(out)
