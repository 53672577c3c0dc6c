"""
Assignment Policies - choose a joining participant's target color.

Policies operate on the canvas's currently unfilled blocks:
- random: Uniform pick over unfilled blocks
- select: Caller's color, if at least one unfilled block has it
- recommend: Color with the most unfilled blocks (first seen wins ties)
"""

from __future__ import annotations
from collections import Counter
import random

from .models import AssignmentPolicy, Block
from ..errors import ColorUnavailable, ValidationError
from ..vision.colors import parse_hex


def color_counts(blocks: list[Block]) -> Counter:
    """Unfilled block count per color, in first-encountered order."""
    return Counter(block.hex_color for block in blocks if not block.is_filled)


def assign_random(blocks: list[Block], rng: random.Random | None = None) -> str:
    available = [block for block in blocks if not block.is_filled]
    return (rng or random).choice(available).hex_color


def assign_selected(blocks: list[Block], selected_color: str | None) -> str:
    if not selected_color:
        raise ValidationError("Selected color is required for 'select' mode")
    wanted = parse_hex(selected_color).hex
    if wanted not in color_counts(blocks):
        raise ColorUnavailable(
            f"Color {wanted} is not available",
            details={"selected_color": wanted},
        )
    return wanted


def assign_recommended(blocks: list[Block]) -> str:
    return color_counts(blocks).most_common(1)[0][0]


def resolve_color(
    policy: AssignmentPolicy,
    blocks: list[Block],
    selected_color: str | None = None,
    rng: random.Random | None = None,
) -> str:
    """
    Resolve a target color for a new participant.

    The caller guarantees at least one unfilled block.
    """
    if policy == AssignmentPolicy.RANDOM:
        return assign_random(blocks, rng)
    if policy == AssignmentPolicy.SELECT:
        return assign_selected(blocks, selected_color)
    if policy == AssignmentPolicy.RECOMMEND:
        return assign_recommended(blocks)
    raise ValidationError(f"Unknown assignment policy: {policy!r}")


def blocks_owed(total_blocks: int, current_participants: int) -> int:
    """Point-in-time share of blocks for a newly joining participant."""
    return total_blocks // (current_participants + 1)
