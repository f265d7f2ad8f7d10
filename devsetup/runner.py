"""
Provisioning Step Runner
--------------------------------------------------

Runs an ordered list of named provisioning steps, one after the other.
A failing step is logged and counted, and the run moves on to the next step:
a broken font download should not keep the SSH keys from being set up.
"""

import subprocess
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from devsetup.commands import captured_output, tail_output
from devsetup.config import SetupContext
from devsetup.errors import PreconditionError, StepFailure
from devsetup.ui import (
    NordColors,
    console,
    print_error,
    print_message,
    print_success,
    print_warning,
)


@dataclass
class Step:
    """
    One named unit of provisioning work.

    Attributes:
        name: Human readable name shown in the progress line
        action: Callable receiving the SetupContext; returns False (or an
            object whose `ok` is False) to signal failure, or raises
        fatal: Abort the whole run when this step fails
        interactive: The action prompts the operator, so no spinner is drawn
    """

    name: str
    action: Callable[[SetupContext], Any]
    fatal: bool = False
    interactive: bool = False


@dataclass
class RunReport:
    total_steps: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def record_success(self) -> None:
        self.completed += 1

    def record_failure(self, name: str, reason: str) -> None:
        self.failed += 1
        self.failures.append((name, reason))


def result_ok(result: Any) -> bool:
    """Interpret the value returned by a step action."""
    if result is False:
        return False
    ok = getattr(result, "ok", None)
    if ok is not None:
        return bool(ok)
    return True


def result_reason(result: Any) -> str:
    message = getattr(result, "message", None)
    return message or "step reported failure"


class StepRunner:
    def __init__(
        self,
        context: SetupContext,
        fail_fast: bool = False,
        verbose: bool = False,
        show_spinner: bool = True,
    ):
        self.context = context
        self.logger = context.logger
        self.fail_fast = fail_fast
        self.verbose = verbose
        self.show_spinner = show_spinner

    def show_progress(self, current: int, total: int, name: str) -> None:
        percentage = current * 100 // total if total else 100
        console.print(
            f"\n[bold {NordColors.FROST_4}][{current}/{total}][/] "
            f"[bold {NordColors.GREEN}]{percentage}%[/] - "
            f"[{NordColors.SNOW_STORM_2}]{escape(name)}[/]"
        )

    def run(self, steps: Iterable[Step]) -> RunReport:
        steps = list(steps)
        report = RunReport(total_steps=len(steps))

        for index, step in enumerate(steps, start=1):
            self.show_progress(index, report.total_steps, step.name)
            start = time.time()
            ok, reason, output = self._execute(step)
            elapsed = time.time() - start

            if ok:
                report.record_success()
                self.logger.info(f"✓ {step.name} completed in {elapsed:.2f}s")
                print_success(escape(step.name))
                continue

            report.record_failure(step.name, reason)
            self.logger.error(f"✗ {step.name} failed in {elapsed:.2f}s: {reason}")
            print_error(f"{escape(step.name)} failed: {escape(reason)}")
            tail = tail_output(output)
            if tail:
                console.print(f"[{NordColors.YELLOW}]Error details:[/]")
                console.print(Text(tail, style="dim"))

            if step.fatal:
                raise PreconditionError(f"{step.name} failed: {reason}")
            if self.fail_fast:
                report.skipped = report.total_steps - index
                print_warning(
                    f"Stopping after first failure; {report.skipped} step(s) skipped"
                )
                break

        self.print_summary(report)
        return report

    def _execute(self, step: Step) -> Tuple[bool, str, Optional[str]]:
        """Invoke a step action and normalise its outcome to (ok, reason, output)."""
        try:
            if self.verbose or step.interactive or not self.show_spinner:
                result = step.action(self.context)
            else:
                with console.status(
                    f"[bold {NordColors.FROST_2}]{escape(step.name)}...",
                    spinner="dots",
                    spinner_style=f"bold {NordColors.FROST_1}",
                ):
                    result = step.action(self.context)
        except PreconditionError:
            raise
        except StepFailure as e:
            return False, e.reason, e.output
        except subprocess.CalledProcessError as e:
            cmd = e.cmd if isinstance(e.cmd, str) else " ".join(map(str, e.cmd))
            return False, f"command failed with exit code {e.returncode}: {cmd}", captured_output(e)
        except subprocess.TimeoutExpired as e:
            return False, f"command timed out after {e.timeout} seconds", captured_output(e)
        except Exception as e:
            self.logger.debug(f"Unexpected error in step {step.name}", exc_info=True)
            return False, str(e) or e.__class__.__name__, None

        if result_ok(result):
            return True, "", None
        return False, result_reason(result), getattr(result, "output", None)

    def print_summary(self, report: RunReport) -> None:
        console.print()
        if report.success:
            print_success("Setup completed successfully with no errors!")
        else:
            print_warning(f"Setup completed with {report.failed} error(s)")
            table = Table(
                title="Failed Steps",
                show_header=True,
                header_style=f"bold {NordColors.FROST_3}",
            )
            table.add_column("Step", style="bold")
            table.add_column("Reason", style=NordColors.RED)
            for name, reason in report.failures:
                table.add_row(Text(name), Text(reason))
            console.print(table)
            print_message(
                "Check the messages above for details on what failed",
                NordColors.FROST_3,
            )
        if self.context.backup.exists:
            print_message(
                f"Backups were placed in {escape(str(self.context.backup.path))}",
                NordColors.FROST_3,
            )
