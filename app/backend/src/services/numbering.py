"""Invoice number generation from a user-defined template."""

from __future__ import annotations

import re
from datetime import date, datetime

COUNTER_PATTERN = re.compile(r"\{N+\}")


def generate_invoice_number(number_format: str, counter: int, now: date | datetime) -> str:
    """Render ``number_format`` for the given ``counter`` and date.

    Placeholders are substituted in order ``{YYYY}``, ``{YY}``, ``{MM}``,
    ``{DD}`` and finally the counter placeholder (``{N}``, ``{NN}``,
    ``{NNN}``...), which is zero-padded to the number of ``N`` characters.
    Only the first occurrence of each placeholder is replaced. A template
    without a counter placeholder only gets its date placeholders filled.
    """

    year = f"{now.year:04d}"
    month = f"{now.month:02d}"
    day = f"{now.day:02d}"

    match = COUNTER_PATTERN.search(number_format)
    padded_counter = str(counter)
    if match:
        width = len(match.group(0)) - 2
        padded_counter = padded_counter.zfill(width)

    rendered = (
        number_format.replace("{YYYY}", year, 1)
        .replace("{YY}", year[-2:], 1)
        .replace("{MM}", month, 1)
        .replace("{DD}", day, 1)
    )
    return COUNTER_PATTERN.sub(lambda _: padded_counter, rendered, count=1)


__all__ = ["COUNTER_PATTERN", "generate_invoice_number"]
