"""Operator confirmation before mutating actions."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console
from rich.text import Text

from ec2ctl.constants import Action
from ec2ctl.core.models import AccountSummary

logger = logging.getLogger(__name__)

AFFIRMATIVE_ANSWERS = frozenset(("y", "yes"))
"""Answers accepted for reversible actions (case-insensitive)."""

DESTRUCTIVE_ANSWER = "yes"
"""The only answer accepted for destructive actions."""

DESTRUCTIVE_ACTIONS = frozenset((Action.TERMINATE,))


class ConfirmationGate:
    """Show the matched instances and ask the operator to proceed.

    Parameters
    ----------
    console : Console | None
        Console the matched instances and prompt are written to
    input_func : Callable[[str], str]
        Reads one line of operator input given a prompt
    """

    def __init__(
        self,
        console: Console | None = None,
        input_func: Callable[[str], str] = input,
    ) -> None:
        self.console = console or Console()
        self.input_func = input_func

    def confirm(
        self, matched: AccountSummary, action: Action | str, force: bool = False
    ) -> AccountSummary:
        """Return the snapshot if the operator approves, else an empty one.

        Parameters
        ----------
        matched : AccountSummary
            Instances selected for the action
        action : Action | str
            Action about to run
        force : bool
            Skip the prompt and approve

        Returns
        -------
        AccountSummary
            ``matched`` unchanged on approval, an empty snapshot otherwise
        """
        action = Action.parse(action)

        if matched.is_empty:
            self.console.print(f"No instances are available for {action.value} command")
            return AccountSummary()

        self._show(matched, action)

        if force:
            logger.debug("Confirmation skipped for %s", action.value)
            return matched

        if action in DESTRUCTIVE_ACTIONS:
            prompt = "\nOnly 'yes' will be accepted to approve.\nEnter a value: "
        else:
            prompt = "\nWould you like to proceed? [y/N] "

        try:
            answer = self.input_func(prompt).strip()
        except EOFError:
            answer = ""

        if self._approved(answer, action):
            return matched

        self.console.print("Aborted.")
        return AccountSummary()

    def _show(self, matched: AccountSummary, action: Action) -> None:
        self.console.print(
            f"\nThis command will {action.value} the following instances matching the filter:\n"
        )
        for region in matched.regions:
            for instance in region.instances:
                line = Text(">> ")
                line.append(instance.name or "-", style="cyan")
                line.append(" ")
                line.append(instance.id, style="green")
                line.append(" ")
                line.append(instance.environment or "", style="white")
                line.append(f" ({region.region})", style="dim")
                self.console.print(line)

    @staticmethod
    def _approved(answer: str, action: Action) -> bool:
        if action in DESTRUCTIVE_ACTIONS:
            return answer == DESTRUCTIVE_ANSWER
        return answer.lower() in AFFIRMATIVE_ANSWERS
