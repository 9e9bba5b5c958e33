"""
Random source for round selection.

Round selection (acting player, truth/lie split, which statement) needs
fair but not cryptographic randomness, so it uses stdlib random.Random.
Passing a seed makes a room's rounds reproducible.
"""

import random


def create_round_rng(seed: int | str | None = None) -> random.Random:
    """Create an RNG for round selection, seeded when a seed is given."""
    if seed is None:
        return random.Random()  # noqa: S311
    if isinstance(seed, str) and not seed:
        raise ValueError("Seed must not be empty")
    return random.Random(seed)  # noqa: S311
