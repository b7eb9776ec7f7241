# pizzashop/catalog/slugs.py
from __future__ import annotations

import re
import time
from typing import Callable

_SPACES = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-]+")
_DASHES = re.compile(r"-{2,}")

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def slugify(name: str, suffix: str = "") -> str:
    slug = _SPACES.sub("-", str(name).lower())
    slug = _NON_WORD.sub("", slug)
    slug = _DASHES.sub("-", slug).strip("-")
    if suffix:
        slug = f"{slug}-{suffix}" if slug else suffix
    return slug


def base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def unique_slug(name: str, taken: Callable[[str], bool], clock: Callable[[], float] = time.time) -> str:
    """Slug for `name`; on collision append a millisecond timestamp and a counter."""
    base = slugify(name) or "pizza"
    slug = base
    counter = 1
    while taken(slug):
        slug = f"{base}-{base36(int(clock() * 1000))}-{counter}"
        counter += 1
    return slug
