"""
apps.config_core.services.run_once
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Run a named operation once per installation, using the datalist as a ledger
of last-run timestamps.

An operation runs when it has never run (no ledger entry) or when its last
run is at or before the supplied threshold timestamp.  Raising the threshold,
typically to a release date, schedules the operation again; lowering it never
undoes a completed run.

Operations are identified by name only, so renaming one resets its history.
A name is turned into a callable by, in order:

1. the callable itself, when one is passed (named ``module.qualname``);
2. an operation registered on the guard under that name;
3. a dotted import path.

Names that resolve to nothing are not invocable and never run.
"""
from __future__ import annotations

import time
from typing import Callable

import structlog
from django.utils.module_loading import import_string

from .datalist import LOOKUP_FAILED, DatalistStore

logger = structlog.get_logger(__name__)

Operation = Callable[[], object]


def operation_name(operation: str | Operation) -> str:
    """Return the ledger name of *operation*."""
    if isinstance(operation, str):
        return operation.strip()
    return f"{operation.__module__}.{operation.__qualname__}"


class RunOnceGuard:
    """
    Idempotent scheduler for upgrade and migration routines.

    Args:
        datalist: Resolver used both to read and to write the ledger.
        clock: Returns the current Unix time; injectable for tests.
    """

    def __init__(
        self,
        datalist: DatalistStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.datalist = datalist
        self.clock = clock
        self._operations: dict[str, Operation] = {}

    def register(self, name: str | None = None):
        """
        Decorator registering an operation under *name* (defaults to the
        function's ``module.qualname``)::

            @guard.register("migrate_v2")
            def migrate_v2():
                ...
        """

        def decorator(func: Operation) -> Operation:
            self._operations[name or operation_name(func)] = func
            return func

        return decorator

    def lookup(self, operation: str | Operation) -> Operation | None:
        if callable(operation):
            return operation
        name = operation_name(operation)
        if name in self._operations:
            return self._operations[name]
        try:
            func = import_string(name)
        except ImportError:
            return None
        return func if callable(func) else None

    def run(self, operation: str | Operation, threshold: int = 0) -> bool:
        """
        Invoke *operation* if its last recorded run is ``<= threshold``.

        Returns:
            ``True`` when the operation ran; ``False`` when it was skipped,
            is not invocable, or the ledger could not be read.
        """
        name = operation_name(operation)
        recorded = self.datalist.resolve(name)

        if recorded is LOOKUP_FAILED:
            logger.warning("run_once_ledger_unreadable", operation=name)
            return False

        if recorded:
            try:
                # Fractional timestamps truncate, e.g. "1700000000.5".
                last_run = int(float(recorded))
            except (TypeError, ValueError, OverflowError):
                logger.warning(
                    "run_once_ledger_corrupt", operation=name, value=repr(recorded)
                )
                return False
        else:
            last_run = 0

        func = self.lookup(operation)
        if func is None or last_run > threshold:
            return False

        func()
        ran_at = int(self.clock())
        if not self.datalist.persist(name, ran_at):
            logger.error("run_once_ledger_write_failed", operation=name, ran_at=ran_at)
        logger.info("run_once_executed", operation=name, ran_at=ran_at, threshold=threshold)
        return True
