"""Message template rendering for rule issues."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


def render(template: str, substitutions: Mapping[str, object]) -> str:
    """Fill ``{key}`` placeholders in *template* from *substitutions*.

    Unknown placeholders are left verbatim so a rule whose config does not
    provide a value stays visibly broken instead of reading as valid text.
    Never raises.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in substitutions:
            return match.group(0)
        return str(substitutions[key])

    return _PLACEHOLDER_RE.sub(_replace, template)
