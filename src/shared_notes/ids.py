"""Notebook and note identifiers.

Notebook ids are three lowercase words joined by dashes, e.g.
``amber-otter-harbor``.  They appear in the address bar, so they are
URL-safe and readable enough to dictate over the phone.  Minting is a pure
function of a seed; the session draws the seed from ``secrets`` when the
caller supplies none.
"""

from __future__ import annotations

import random
import re
import secrets
import uuid

_WORDS = (
    "amber", "apple", "arrow", "aspen", "badge", "baker", "basil", "birch",
    "blaze", "bloom", "brook", "cabin", "cedar", "chalk", "cider", "cliff",
    "cloud", "coral", "crane", "creek", "delta", "dune", "ember", "fable",
    "fern", "field", "flint", "frost", "grove", "harbor", "hazel", "heron",
    "honey", "iris", "ivory", "jade", "juniper", "kettle", "lark", "lemon",
    "lilac", "linen", "maple", "marsh", "meadow", "mint", "moss", "nectar",
    "north", "oak", "olive", "orbit", "otter", "pearl", "pepper", "pine",
    "plum", "quartz", "raven", "reed", "ridge", "river", "robin", "sage",
    "sand", "shore", "slate", "spruce", "stone", "swift", "thyme", "tide",
    "timber", "tulip", "valley", "velvet", "willow", "wren", "yarrow", "zephyr",
)

# Dash-separated lowercase words or digits
_NOTEBOOK_ID_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def mint_notebook_id(seed: int, *, words: int = 3) -> str:
    """Return a notebook id derived deterministically from *seed*."""
    rng = random.Random(seed)
    return "-".join(rng.choice(_WORDS) for _ in range(words))


def random_seed() -> int:
    """32 bits of OS entropy, the same width the browser bootstrap used."""
    return secrets.randbits(32)


def mint_note_id() -> str:
    return uuid.uuid4().hex


def is_notebook_id(value: str) -> bool:
    return bool(_NOTEBOOK_ID_RE.match(value))


def parse_notebook_path(path: str | None) -> str | None:
    """Extract the notebook id from an address path.

    ``"/"``, ``""`` and ``None`` mean "no notebook yet"; ``"/amber-otter-harbor"``
    yields ``"amber-otter-harbor"``.  Anything that is not a valid id is
    treated as absent.
    """
    if not path:
        return None
    candidate = path.strip().strip("/").split("/", 1)[0]
    if not candidate or not is_notebook_id(candidate):
        return None
    return candidate
