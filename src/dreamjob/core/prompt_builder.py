"""Occupation portrait prompt template.

The prompt is a single fixed template with the user's occupation text
embedded in quotes::

    A professional portrait of a person working as a "<occupation>" in a
    fun, creative, and modern style. ... professional photography style.

The occupation text is trimmed and otherwise embedded verbatim.  No escaping
or length limiting is applied.

Usage
-----
::

    prompt = build_prompt("space cafe barista")
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fixed template sections.
# The subject sentence carries the occupation; the remaining sentences pin the
# portrait aesthetic so results stay consistent across occupations.
# ---------------------------------------------------------------------------

_SUBJECT_TEMPLATE = (
    'A professional portrait of a person working as a "{occupation}" '
    "in a fun, creative, and modern style."
)

_SETTING_BOILERPLATE = (
    "The person should be wearing appropriate attire and be in a relevant work environment."
)

_QUALITY_BOILERPLATE = (
    "High quality, detailed, photorealistic, good lighting, professional photography style."
)


def build_prompt(occupation: str) -> str:
    """Compile the portrait prompt for an occupation.

    Args:
        occupation: Free-text occupation supplied by the user.

    Returns:
        The full prompt string, sentences separated by single spaces.

    Raises:
        ValueError: If ``occupation`` is empty after trimming.
    """
    stripped = occupation.strip()
    if not stripped:
        raise ValueError("occupation must not be empty")

    return " ".join(
        [
            _SUBJECT_TEMPLATE.format(occupation=stripped),
            _SETTING_BOILERPLATE,
            _QUALITY_BOILERPLATE,
        ]
    )
