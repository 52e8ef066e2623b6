"""Background executors for loads and bond inference."""

from __future__ import annotations

from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
import multiprocessing as mp
from typing import Any, Callable, Optional


class Worker:
    """Executors used by the bridge and the model.

    File and network loads run on a thread pool so the caller is never
    blocked by I/O. Bond inference is pure numpy work over a position array
    and may be sent to a spawn-context process pool instead.

    Attributes
    ----------
    _executor
        Thread pool for bridge calls.
    _process_executor
        Process pool for bond inference, or None when disabled.
    """

    def __init__(self, max_workers: int = 1, max_processes: int = 0) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mogura"
        )
        self._process_executor: Optional[ProcessPoolExecutor] = None
        if max_processes > 0:
            self._process_executor = ProcessPoolExecutor(
                max_workers=max_processes, mp_context=mp.get_context("spawn")
            )

    def __enter__(self) -> "Worker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def submit_cpu(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Schedule ``compute_bonds``-style work.

        Falls back to the thread pool when no process pool was requested.
        With a process pool, ``fn`` must be a module-level function and its
        arguments picklable.
        """
        if self._process_executor is None:
            return self.submit(fn, *args, **kwargs)
        return self._process_executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        if self._process_executor is not None:
            self._process_executor.shutdown(wait=wait)
            self._process_executor = None
