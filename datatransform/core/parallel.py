"""Async parallel execution of per-partition tasks."""

import asyncio
import inspect
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

from datatransform.core.exceptions import DataTransformError, EngineError

T = TypeVar("T")
R = TypeVar("R")


class AsyncParallelExecutor:
    """Async executor for running partition tasks concurrently.

    Results come back in input order regardless of completion order. An
    asyncio.Semaphore bounds how many tasks run at once; synchronous task
    functions run in the default thread pool.
    """

    def __init__(self, concurrency: int):
        """Initialize async parallel executor.

        Args:
            concurrency: Maximum number of concurrent partition tasks
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.semaphore: asyncio.Semaphore | None = None

    async def process(
        self,
        items: Iterable[T],
        process_func: Callable[[T], R],
    ) -> list[R]:
        """Process items in parallel while maintaining order.

        Args:
            items: Partitions (or any work items) to process
            process_func: Function applied to each item (sync or async)

        Returns:
            List of results in the same order as the input items

        Raises:
            DataTransformError: The first task error, unchanged, when it is
                one of ours (so callers keep the column context)
            EngineError: If a task fails with any other exception
        """
        item_list = list(items)
        if not item_list:
            return []

        # Bound to the running loop
        self.semaphore = asyncio.Semaphore(self.concurrency)

        tasks = [
            self._process_with_semaphore(item, process_func) for item in item_list
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        processed_results = []
        for i, result in enumerate(results):
            if isinstance(result, DataTransformError):
                raise result
            if isinstance(result, Exception):
                raise EngineError(
                    f"Partition {i} processing failed: {result}",
                    phase="execute",
                    context={"partition": i, "concurrency": self.concurrency},
                ) from result
            processed_results.append(result)

        return processed_results

    async def _process_with_semaphore(
        self,
        item: T,
        process_func: Callable[[T], R],
    ) -> R:
        async with self.semaphore:
            if inspect.iscoroutinefunction(process_func):
                return await process_func(item)
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, process_func, item)


def run_async(coro):
    """Run async coroutine in sync context.

    Uses asyncio.run() when no loop is running. When called from inside a
    running loop (e.g. a notebook), the coroutine runs on a fresh loop in a
    helper thread.

    Args:
        coro: Coroutine to run

    Returns:
        Result of coroutine
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()
