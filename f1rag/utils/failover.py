"""Endpoint failover policy.

Embedding regions and chat models are both held as ordered lists.  When a
call against the current entry fails, the caller asks :func:`try_next` for
the entry to use next.  The policy is a pure function of its arguments so
the caller owns all state (the cursor and the attempt counter).
"""

from __future__ import annotations


def try_next(endpoint_count: int, current: int, attempts: int) -> int | None:
    """Return the index of the next endpoint to try, or ``None`` when exhausted.

    Parameters
    ----------
    endpoint_count:
        Length of the ordered endpoint list.
    current:
        Index of the endpoint that just failed.
    attempts:
        Number of endpoints already tried for this call, including *current*.

    Returns
    -------
    int or None
        ``(current + 1) % endpoint_count`` while fewer than
        ``endpoint_count`` attempts have been made, otherwise ``None``.
    """
    if endpoint_count <= 0 or attempts >= endpoint_count:
        return None
    return (current + 1) % endpoint_count
