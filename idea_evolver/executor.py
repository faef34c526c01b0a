"""
Task executor
=============

Runs planned tasks against the generation units, either strictly in order
or as batches running concurrently.

Parallel mode splits the task list into batches of `batch_size`, gathers
all batches at once and runs the tasks inside one batch one by one with a
small delay between them. Every submitted task yields exactly one
TaskResult, in submission order, whatever happens to its siblings.
"""

import asyncio
import logging
import time
from typing import List, Protocol

from .models import DevelopmentPlan, ExecutionMode, PlanContext, Task, TaskResult
from .progress import ProgressObserver, notify_complete, notify_error, notify_progress

logger = logging.getLogger(__name__)

SOURCE = "Executor"


class TaskRunner(Protocol):
    async def run(self, task: Task, context: PlanContext) -> str: ...


class Executor:
    def __init__(
        self,
        runner: TaskRunner,
        batch_size: int = 3,
        inter_task_delay: float = 0.1,
    ):
        self.runner = runner
        self.batch_size = max(1, batch_size)
        self.inter_task_delay = inter_task_delay
        self._observers: List[ProgressObserver] = []

    def add_observer(self, observer: ProgressObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: ProgressObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    async def run(
        self,
        tasks: List[Task],
        plan: DevelopmentPlan,
        mode: ExecutionMode = "parallel",
    ) -> List[TaskResult]:
        # units only ever see the original input, never each other's output
        context = plan.context

        if mode == "sequential":
            notify_progress(
                self._observers, "started", SOURCE, f"Executing {len(tasks)} task(s) sequentially"
            )
            results = [await self._run_task(task, context) for task in tasks]
            failed_batches = 0
        elif mode == "parallel":
            results, failed_batches = await self._run_parallel(tasks, context)
        else:
            raise ValueError(f"Unknown execution mode: {mode!r}")

        succeeded = sum(1 for r in results if r.success)
        rate = (succeeded / len(results) * 100) if results else 100.0
        notify_progress(
            self._observers,
            "completed",
            SOURCE,
            f"Completed {succeeded}/{len(results)} task(s) ({rate:.0f}% success)",
        )

        if failed_batches:
            notify_error(
                self._observers,
                RuntimeError(f"{failed_batches} batch(es) failed during execution"),
            )
        notify_complete(self._observers, results)

        return results

    async def _run_parallel(self, tasks: List[Task], context: PlanContext):
        batches = [tasks[i:i + self.batch_size] for i in range(0, len(tasks), self.batch_size)]
        notify_progress(
            self._observers,
            "started",
            SOURCE,
            f"Executing {len(tasks)} task(s) in {len(batches)} parallel batch(es)",
        )

        outcomes = await asyncio.gather(
            *(self._run_batch(batch, context) for batch in batches),
            return_exceptions=True,
        )

        results: List[TaskResult] = []
        failed_batches = 0
        for batch, outcome in zip(batches, outcomes):
            if isinstance(outcome, BaseException):
                failed_batches += 1
                logger.error("Batch of %d task(s) crashed: %s", len(batch), outcome)
                results.extend(
                    TaskResult(unit=task.unit, success=False, error=f"Batch execution failed: {outcome}")
                    for task in batch
                )
            else:
                results.extend(outcome)

        return results, failed_batches

    async def _run_batch(self, batch: List[Task], context: PlanContext) -> List[TaskResult]:
        results: List[TaskResult] = []
        for i, task in enumerate(batch):
            if i and self.inter_task_delay > 0:
                await asyncio.sleep(self.inter_task_delay)
            results.append(await self._run_task(task, context))
        return results

    async def _run_task(self, task: Task, context: PlanContext) -> TaskResult:
        notify_progress(self._observers, "started", task.unit, f"{task.unit} started")
        start = time.perf_counter()

        try:
            output = await self.runner.run(task, context)
        except Exception as e:
            duration = (time.perf_counter() - start) * 1000
            message = str(e) or type(e).__name__
            logger.warning("Task %s failed after %.0fms: %s", task.unit, duration, message)
            notify_progress(self._observers, "failed", task.unit, error=message)
            return TaskResult(unit=task.unit, success=False, error=message, duration_ms=duration)

        duration = (time.perf_counter() - start) * 1000
        notify_progress(
            self._observers, "completed", task.unit, f"{task.unit} completed in {duration:.0f}ms"
        )
        return TaskResult(unit=task.unit, success=True, output=output, duration_ms=duration)

