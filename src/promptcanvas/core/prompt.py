"""Prompt composition for the text-to-image model.

The final prompt is the user's text, optionally suffixed with a style
phrase::

    compose("A lighthouse at dusk", "watercolor")
    # -> "A lighthouse at dusk, in the style of watercolor"

Style identifiers are free-form and inserted verbatim.  Upstream input
validation is trusted; no escaping is applied.
"""

from __future__ import annotations

from promptcanvas.core.styles import NO_STYLE

STYLE_SEPARATOR = ", in the style of "


def compose(prompt_text: str, style_id: str) -> str:
    """Build the text sent to the model.

    Args:
        prompt_text: The user's prompt, used as-is.
        style_id: Style identifier, or ``"none"`` to leave the prompt
            unchanged.

    Returns:
        ``prompt_text`` when ``style_id`` is ``"none"``, otherwise
        ``"<prompt_text>, in the style of <style_id>"``.
    """
    if style_id == NO_STYLE:
        return prompt_text
    return f"{prompt_text}{STYLE_SEPARATOR}{style_id}"
