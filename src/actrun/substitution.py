# substitution.py
"""
Lightweight `${{ }}` substitution against run-time state.

Used for shell command text and for job outputs. Only two shapes are
resolved:

    ${{ steps.<id>.outputs.<name> }}   -> recorded step output, or ""
    ${{ env.<NAME> }}                  -> dynamic environment value, or ""

Any other `${{ ... }}` is left in the text exactly as written. Substituted
values are not scanned again.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

_EXPRESSION = re.compile(r"\$\{\{(.*?)\}\}", re.DOTALL)
_STEP_OUTPUT = re.compile(r"^steps\.([^.\s]+)\.outputs\.([^.\s]+)$")
_ENV = re.compile(r"^env\.([^.\s]+)$")


def resolve_reference(
    expression: str,
    step_outputs: Mapping[str, Mapping[str, str]],
    dynamic_env: Mapping[str, str],
) -> Optional[str]:
    """
    Resolve the inside of one `${{ }}`.

    Returns None when the expression is not one of the two supported shapes.
    """
    expr = " ".join(expression.split())

    m = _STEP_OUTPUT.match(expr)
    if m:
        return step_outputs.get(m.group(1), {}).get(m.group(2), "")

    m = _ENV.match(expr)
    if m:
        return dynamic_env.get(m.group(1), "")

    return None


def substitute(
    text: str,
    step_outputs: Mapping[str, Mapping[str, str]],
    dynamic_env: Mapping[str, str],
) -> str:
    def replace(match: "re.Match[str]") -> str:
        value = resolve_reference(match.group(1), step_outputs, dynamic_env)
        return match.group(0) if value is None else value

    return _EXPRESSION.sub(replace, text)
