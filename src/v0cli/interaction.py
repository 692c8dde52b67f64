"""User interaction during login: progress, confirmation and manual cookie input."""

import logging
import queue
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Callable, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.prompt import Confirm

logger = logging.getLogger(__name__)


class UserInteractionPort(ABC):
    """What the login flow needs from whatever front end drives it."""

    @abstractmethod
    def report_progress(self, percent: int, message: str) -> None:
        """Fire-and-forget progress notification."""

    @abstractmethod
    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question and wait for the answer."""

    @abstractmethod
    def request_manual_input(self, instructions: str) -> Optional[str]:
        """Ask the user to paste cookie text. None when they give nothing."""

    @abstractmethod
    def is_cancelled(self) -> bool:
        """True once the user asked to stop."""

    @abstractmethod
    def cancel(self) -> None:
        """Request cancellation of the current login."""


class ConsoleInteraction(UserInteractionPort):
    """Terminal front end built on rich.

    The thread that calls pump() is the UI thread. Calls from the login
    worker are queued to it; confirm() and request_manual_input() block the
    worker until the UI thread has an answer. Calls made on the UI thread
    itself run inline.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._tasks: "queue.Queue[tuple[Callable[[], Any], Optional[Future]]]" = queue.Queue()
        self._cancelled = threading.Event()
        self._ui_thread = threading.current_thread()
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    # Dispatch

    def _on_ui_thread(self) -> bool:
        return threading.current_thread() is self._ui_thread

    def _post(self, fn: Callable[[], Any]) -> None:
        if self._on_ui_thread():
            fn()
        else:
            self._tasks.put((fn, None))

    def _call(self, fn: Callable[[], Any]) -> Any:
        if self._on_ui_thread():
            return fn()
        result: Future = Future()
        self._tasks.put((fn, result))
        return result.result()

    def _run_task(self, fn: Callable[[], Any], result: Optional[Future]) -> None:
        try:
            value = fn()
        except KeyboardInterrupt:
            # Ctrl-C at a prompt: answer "no" and cancel the login
            self.console.print("[yellow]Cancelling login...[/yellow]")
            self.cancel()
            if result is not None:
                result.set_result(None)
        except BaseException as e:
            if result is None:
                raise
            result.set_exception(e)
        else:
            if result is not None:
                result.set_result(value)

    def pump(self, work: Future, poll_interval: float = 0.1) -> Any:
        """Serve UI requests until work finishes and return its result.

        Ctrl-C cancels the login instead of killing the process; the worker
        notices at its next check.
        """
        self._ui_thread = threading.current_thread()
        try:
            while True:
                result = None
                try:
                    try:
                        fn, result = self._tasks.get(timeout=poll_interval)
                    except queue.Empty:
                        if work.done():
                            break
                        continue
                    self._run_task(fn, result)
                except KeyboardInterrupt:
                    self.console.print("[yellow]Cancelling login...[/yellow]")
                    self.cancel()
                    # a dequeued request must still be answered or the worker blocks on it
                    if result is not None and not result.done():
                        result.set_result(None)

            while not self._tasks.empty():
                self._run_task(*self._tasks.get_nowait())
        finally:
            self._stop_progress()

        return work.result()

    # Rendering, always on the UI thread

    def _stop_progress(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None

    def _render_progress(self, percent: int, message: str) -> None:
        if self._progress is None:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(bar_width=30),
                TextColumn("{task.percentage:>3.0f}%"),
                console=self.console,
                transient=True,
            )
            self._progress.start()
            self._task_id = self._progress.add_task(message, total=100)
        self._progress.update(self._task_id, completed=max(0, min(100, percent)), description=message)

    def _ask_confirm(self, prompt: str) -> bool:
        self._stop_progress()
        return Confirm.ask(prompt, console=self.console, default=True)

    def _ask_manual_input(self, instructions: str) -> Optional[str]:
        self._stop_progress()
        self.console.print(instructions)
        self.console.print("[dim]Finish with an empty line.[/dim]")

        lines = []
        while True:
            try:
                line = self.console.input()
            except EOFError:
                break
            if not line.strip():
                break
            lines.append(line)

        text = "\n".join(lines).strip()
        return text or None

    # UserInteractionPort

    def report_progress(self, percent: int, message: str) -> None:
        self._post(lambda: self._render_progress(percent, message))

    def confirm(self, prompt: str) -> bool:
        return self._call(lambda: self._ask_confirm(prompt))

    def request_manual_input(self, instructions: str) -> Optional[str]:
        return self._call(lambda: self._ask_manual_input(instructions))

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        logger.info("Login cancellation requested")
        self._cancelled.set()
