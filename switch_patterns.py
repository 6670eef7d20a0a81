# File: switch_patterns.py
"""
A/B source patterns across the 16 switcher outputs.

Each pattern stages paths with ``set_path``; nothing switches until the
salvo is executed. Source A and B alternate between inputs 1 and 2 as
``n_switches`` counts up, so calling a pattern with n = 0, 1, 2, ... flips
the picture each time.
"""

import random
from typing import Callable, Dict, Optional, Tuple

from homerun_exceptions import InvalidArgument


OUTPUT_COUNT = 16


def sources(n_switches: int) -> Tuple[int, int]:
    """Inputs (A, B) for the given switch count."""
    return (n_switches % 2) + 1, ((n_switches + 1) % 2) + 1


def path_abab(switcher, n_switches: int) -> None:
    """Outputs alternate A, B, A, B, ..."""
    a, b = sources(n_switches)
    for i in range(OUTPUT_COUNT):
        switcher.set_path(a if i % 2 == 0 else b, i + 1)


def path_aabbaabb(switcher, n_switches: int) -> None:
    """Outputs alternate in pairs: A, A, B, B, ..."""
    a, b = sources(n_switches)
    for i in range(OUTPUT_COUNT):
        switcher.set_path(a if i % 4 < 2 else b, i + 1)


def path_random_all(switcher, rng: Optional[random.Random] = None) -> None:
    """Every output gets A or B at random."""
    rng = rng or random
    for i in range(OUTPUT_COUNT):
        switcher.set_path(rng.randint(1, 2), i + 1)


def path_random_some(switcher, rng: Optional[random.Random] = None) -> None:
    """About half the outputs get A or B at random; the rest are left alone."""
    rng = rng or random
    for i in range(OUTPUT_COUNT):
        if rng.random() < 0.5:
            switcher.set_path(rng.randint(1, 2), i + 1)


def path_cycle_ab(switcher, n_switches: int) -> None:
    """All outputs show the same source, flipping between A and B."""
    source, _ = sources(n_switches)
    for i in range(OUTPUT_COUNT):
        switcher.set_path(source, i + 1)


PATTERNS: Dict[str, Callable] = {
    'abab': path_abab,
    'aabbaabb': path_aabbaabb,
    'random_all': path_random_all,
    'random_some': path_random_some,
    'cycle_ab': path_cycle_ab,
}

_RANDOM_PATTERNS = ('random_all', 'random_some')


def apply_pattern(
    switcher,
    name: str,
    n_switches: int = 0,
    execute: bool = False,
    rng: Optional[random.Random] = None,
) -> None:
    """
    Stage a named pattern and optionally commit it.

    Args:
        switcher: Anything with ``set_path`` and ``execute_switch``
        name: Key of :data:`PATTERNS`
        n_switches: Switch count for the alternating patterns
        execute: Send the salvo switch after staging
        rng: Random source for the random patterns

    Raises:
        InvalidArgument: Unknown pattern name
    """
    try:
        pattern = PATTERNS[name]
    except KeyError:
        raise InvalidArgument(
            f"Unknown pattern '{name}'. Available: {', '.join(sorted(PATTERNS))}"
        ) from None

    if name in _RANDOM_PATTERNS:
        pattern(switcher, rng)
    else:
        pattern(switcher, n_switches)

    if execute:
        switcher.execute_switch()
