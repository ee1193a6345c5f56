from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable


def run_concurrently(*calls: Callable[[], Any]) -> list[Any]:
    """
    Issue independent calls at the same time and wait for every one of them.

    Nothing is cancelled or rolled back when one call fails: the others still
    run to completion, then the first failure (in argument order) is raised.
    """
    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(call) for call in calls]
        wait(futures)
    for future in futures:
        exc = future.exception()
        if exc is not None:
            raise exc
    return [future.result() for future in futures]
