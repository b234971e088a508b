"""Classify downstream errors as failures or accepted-but-pending outcomes.

GitHub answers some requests with 202 Accepted. The client turns that into an
``AcceptedError``, which tool handlers usually wrap with their own context
(``raise SafeError(...) from err``), so the marker can sit at any depth of the
exception chain.
"""

from __future__ import annotations

from collections.abc import Iterator

from .errors import AcceptedError


def iter_error_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield ``err`` and every exception it wraps, outermost first.

    Follows ``__cause__``, then ``__context__`` unless it was suppressed with
    ``raise ... from None``. Cycles are visited once.
    """
    seen: set[int] = set()
    current = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def find_accepted_error(err: BaseException | None) -> AcceptedError | None:
    """Return the first ``AcceptedError`` in the chain, if any."""
    for item in iter_error_chain(err):
        if isinstance(item, AcceptedError):
            return item
    return None


def is_accepted_error(err: BaseException | None) -> bool:
    """Return True if the error chain signals "accepted, processing asynchronously".

    ``None`` means no error at all and is never accepted.
    """
    return find_accepted_error(err) is not None
