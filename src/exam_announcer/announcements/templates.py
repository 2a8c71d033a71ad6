"""
Template resolution for announcement messages.

Templates reference timer state with ``{identifier}`` placeholders, e.g.
``"{program}, you have {remainingWords} left."``. Unknown placeholders are
left in place untouched so that templates written for newer versions
still read sensibly.
"""

import re

from ..models import Timer

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

NUMBER_WORDS: dict[int, str] = {
    1: "one",
    2: "two",
    3: "three",
    4: "four",
    5: "five",
    6: "six",
    7: "seven",
    8: "eight",
    9: "nine",
    10: "ten",
    15: "fifteen",
    20: "twenty",
    30: "thirty",
    45: "forty-five",
    60: "sixty",
}


def minutes_in_words(minutes: int) -> str:
    """Spoken form of a minute count, e.g. 5 -> "five minutes"."""
    word = NUMBER_WORDS.get(minutes)
    if word is None:
        return f"{minutes} minutes"
    return f"{word} minute" if minutes == 1 else f"{word} minutes"


def template_variables(timer: Timer) -> dict[str, str]:
    """Compute the substitution table for ``timer``."""
    remaining_minutes = timer.remaining_seconds // 60
    elapsed_seconds = timer.duration_seconds - timer.remaining_seconds

    return {
        "program": timer.program if timer.program is not None else timer.label,
        "courseCode": timer.course_code or "",
        "label": timer.label or "",
        "remainingMinutes": str(remaining_minutes),
        "remainingSeconds": str(timer.remaining_seconds),
        "remainingWords": minutes_in_words(remaining_minutes),
        "elapsedMinutes": str(elapsed_seconds // 60),
        "totalMinutes": str(timer.duration_seconds // 60),
        "studentCount": "" if timer.student_count is None else str(timer.student_count),
    }


def resolve_template(template: str, timer: Timer) -> str:
    """Substitute timer variables into ``template``.

    Args:
        template: Message template with ``{identifier}`` placeholders.
        timer: Timer whose current state supplies the values.

    Returns:
        The resolved text. Never raises; missing fields become "".
    """
    variables = template_variables(timer)
    return _PLACEHOLDER.sub(lambda m: variables.get(m.group(1), m.group(0)), template)
