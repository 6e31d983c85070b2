"""Utility functions for the Kubernetes infrastructure layer.

Provides helper functions for running async code in sync contexts.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine in a blocking sync context.

    This is how synchronous typer commands drive the async workflows.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Example:
        from chectl.infra.k8s import Kr8sController, run_sync

        controller = Kr8sController()
        run_sync(controller.check_api())
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No running loop, create a new one
        return asyncio.run(coro)

    # Already inside a loop: run on a fresh loop in a worker thread
    if loop.is_running():
        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, coro)
            return future.result()
    return loop.run_until_complete(coro)
