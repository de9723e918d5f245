import re

# Each flag fires when every one of its patterns matches (case-insensitive)
RED_FLAGS = [
    ("Inline handlers or eval", [r"onload\s*=|onclick\s*=|eval\("]),
    ("Crypto wallet bait", [r"bitcoin|crypto\s*wallet|seed\s*phrase"]),
    ("Giveaway bait", [r"giveaway"]),
    ("Login + verification combo", [r"login", r"verify"]),
    ("CSS blur trick", [r"blur\(|filter:.*blur"]),
]

_COMPILED = [
    (label, [re.compile(p, re.IGNORECASE) for p in patterns])
    for label, patterns in RED_FLAGS
]


def html_red_flags(html: str = "") -> list:
    html = html or ""
    return [
        label for label, patterns in _COMPILED
        if all(p.search(html) for p in patterns)
    ]
