"""Optional, failure-tolerant enhancement plugins.

An enhancer receives a G-code text or a motion program plus a goal hint and
may return an improved version.  It is never required for correctness: the
deterministic pipelines call it last, under a timeout, and keep their own
result whenever it fails, times out or returns nothing useful.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Enhancer(Protocol):
    def enhance(self, subject, goal_hint: str):
        """Return an improved *subject*, or None to keep it unchanged."""
        ...


class NullEnhancer:
    """Enhancer that never changes anything."""

    def enhance(self, subject, goal_hint: str):
        return None


def enhance_best_effort(
    enhancer: Optional[Enhancer],
    subject: T,
    goal_hint: str,
    timeout: float,
) -> T:
    """Run *enhancer* on *subject*, falling back to *subject* on any failure.

    The call runs on a worker thread so a slow collaborator cannot hold the
    caller past *timeout* seconds.  Results of a different type than
    *subject* are discarded.
    """
    if enhancer is None or isinstance(enhancer, NullEnhancer):
        return subject

    pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = pool.submit(enhancer.enhance, subject, goal_hint)
        result = future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        logger.warning("Enhancer timed out after %.1f s; keeping deterministic result", timeout)
        return subject
    except Exception:
        logger.warning("Enhancer failed; keeping deterministic result", exc_info=True)
        return subject
    finally:
        pool.shutdown(wait=False)

    if result is None:
        return subject
    if not isinstance(result, type(subject)):
        logger.warning(
            "Enhancer returned %s instead of %s; ignoring it",
            type(result).__name__, type(subject).__name__,
        )
        return subject
    return result
