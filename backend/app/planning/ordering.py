"""Fractional order keys for inserting a node directly after another.

Order keys are floats unique within a day. Inserting after key `k` takes
`k + 0.5` when that sits strictly between `k` and the next key, otherwise
the midpoint of the gap, so no existing node ever has to move.
"""

from collections.abc import Iterable


def order_after(order: float, sibling_orders: Iterable[float]) -> float:
    """Free order key directly after `order`.

    Args:
        order: Key of the node to insert after
        sibling_orders: Keys of the other nodes on the same day

    Returns:
        A key strictly between `order` and the next sibling key

    Raises:
        ValueError: If float precision leaves no key in the gap
    """
    later = [o for o in sibling_orders if o > order]
    next_order = min(later) if later else None

    candidate = order + 0.5
    if next_order is None or candidate < next_order:
        return candidate

    midpoint = (order + next_order) / 2
    if not order < midpoint < next_order:
        raise ValueError(f"No free order key between {order} and {next_order}")
    return midpoint
