"""
Human-readable ticket and invoice numbers.

Format is the lowercase month abbreviation followed by four random digits,
e.g. ``mar4821``. Numbers are display identifiers only and may collide; the
database id is the unique key.
"""

import random
import re
from datetime import datetime
from typing import Optional

MONTH_ABBREVIATIONS = ("jan", "feb", "mar", "apr", "may", "jun",
                       "jul", "aug", "sep", "oct", "nov", "dec")

NUMBER_PATTERN = re.compile(r"^[a-z]{3}\d{4}$")


def generate_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    now = now or datetime.now()
    rng = rng or random
    return f"{MONTH_ABBREVIATIONS[now.month - 1]}{rng.randint(1000, 9999)}"


def generate_ticket_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    return generate_number(now, rng)


def generate_invoice_number(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    return generate_number(now, rng)
