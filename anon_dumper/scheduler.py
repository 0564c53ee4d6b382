"""
Dependency-ordered task execution.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

TaskFunction = Callable[[dict[str, Any]], Any]


@dataclass
class Task:
    name: str
    function: TaskFunction
    depends_on: tuple[str, ...] = ()


@dataclass
class GraphResult:
    """Results of the tasks that completed, plus the first failure if any."""
    results: dict[str, Any] = field(default_factory=dict)
    error: Optional[Exception] = None
    failed_task: Optional[str] = None
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskGraph:
    """
    Runs named tasks once their dependencies have completed.

    Each task receives a dict holding the results of all tasks finished so
    far. Independent tasks run in parallel on a thread pool. When a task
    fails, the first error is kept and no further task is started; tasks
    already running are allowed to finish.
    """

    def __init__(self):
        self.tasks: dict[str, Task] = {}

    def add(self, name: str, function: TaskFunction, depends_on: Iterable[str] = ()) -> None:
        if name in self.tasks:
            raise ValueError(f"Task '{name}' already defined")
        self.tasks[name] = Task(name, function, tuple(depends_on))

    def validate(self) -> None:
        """Reject unknown dependencies and cycles."""
        for task in self.tasks.values():
            for dependency in task.depends_on:
                if dependency not in self.tasks:
                    raise ValueError(f"Task '{task.name}' depends on unknown task '{dependency}'")

        visiting, done = set(), set()

        def visit(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                raise ValueError(f"Dependency cycle through task '{name}'")
            visiting.add(name)
            for dependency in self.tasks[name].depends_on:
                visit(dependency)
            visiting.discard(name)
            done.add(name)

        for name in self.tasks:
            visit(name)

    def run(self, max_workers: Optional[int] = None) -> GraphResult:
        self.validate()
        outcome = GraphResult()
        pending = dict(self.tasks)
        running: dict[Future, str] = {}

        with ThreadPoolExecutor(max_workers=max_workers or max(len(self.tasks), 1)) as executor:
            while pending or running:
                if outcome.error is None:
                    for name in [n for n, t in pending.items()
                                 if all(d in outcome.results for d in t.depends_on)]:
                        task = pending.pop(name)
                        logging.debug(f"Task '{name}' started")
                        running[executor.submit(task.function, dict(outcome.results))] = name
                else:
                    outcome.skipped.extend(pending)
                    pending.clear()

                if not running:
                    break

                finished, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in finished:
                    name = running.pop(future)
                    try:
                        outcome.results[name] = future.result()
                        logging.debug(f"Task '{name}' finished")
                    except Exception as e:
                        logging.error(f"Task '{name}' failed: {e}")
                        if outcome.error is None:
                            outcome.error = e
                            outcome.failed_task = name

        if outcome.skipped:
            logging.warning(f"Skipped task(s) after failure: {', '.join(outcome.skipped)}")
        return outcome
