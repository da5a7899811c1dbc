"""
Cleanup applied to model-generated HTML.
"""

import re

_LEADING_FENCE = re.compile(r"^```(html)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$", re.IGNORECASE)


def strip_code_fences(text: str | None) -> str:
    """
    Remove one leading ```` ```html ```` / ```` ``` ```` fence and one trailing
    fence, then strip whitespace. Text without fences is only stripped.

    Examples:
        >>> strip_code_fences("```html\\n<div>x</div>\\n```")
        '<div>x</div>'
        >>> strip_code_fences("<p>plain</p>  ")
        '<p>plain</p>'
    """
    if not text:
        return ""
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    return text.strip()
