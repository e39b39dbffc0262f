"""
ID generation helpers.

Converters receive an id generator callable so that tests can swap in a
deterministic one.
"""

import itertools
import random
import string
import time
from typing import Callable

_ALPHABET = string.ascii_lowercase + string.digits


def generate_unique_id(prefix: str = 'id') -> str:
    """
    Generate a unique ID with a prefix.

    Format is ``<prefix>_<epoch millis>_<9 random base36 chars>``.
    """
    suffix = ''.join(random.choices(_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def create_sequential_id_generator(seed: int = 1) -> Callable[[str], str]:
    """
    Create a generator returning ``<prefix>_<n>`` with n counting up from seed.

    The counter is shared across prefixes.
    """
    counter = itertools.count(seed)

    def generate(prefix: str = 'id') -> str:
        return f"{prefix}_{next(counter)}"

    return generate
