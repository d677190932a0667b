from unittest.mock import MagicMock

import pytest

from ec2ctl.core.confirmation import ConfirmationGate
from ec2ctl.core.models import AccountSummary, Instance, RegionSummary


@pytest.fixture
def matched() -> AccountSummary:
    return AccountSummary(
        (
            RegionSummary(
                "us-east-1",
                (
                    Instance(
                        id="i-00000001",
                        region="us-east-1",
                        status="stopped",
                        name="web-1",
                        environment="dev",
                    ),
                ),
            ),
        )
    )


class TestConfirmationGate:
    def test_empty_selection_never_prompts(self, console, console_output) -> None:
        input_func = MagicMock()

        result = ConfirmationGate(console, input_func).confirm(AccountSummary(), "start")

        assert result.is_empty
        input_func.assert_not_called()
        assert "No instances are available for start command" in console_output.getvalue()

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES", " yes "])
    def test_affirmative_answers_approve(self, console, matched, answer) -> None:
        result = ConfirmationGate(console, lambda _: answer).confirm(matched, "start")

        assert result == matched

    @pytest.mark.parametrize("answer", ["", "n", "no", "maybe"])
    def test_other_answers_refuse(self, console, console_output, matched, answer) -> None:
        result = ConfirmationGate(console, lambda _: answer).confirm(matched, "stop")

        assert result.is_empty
        assert "Aborted." in console_output.getvalue()

    def test_lists_matched_instances(self, console, console_output, matched) -> None:
        ConfirmationGate(console, lambda _: "n").confirm(matched, "start")

        output = console_output.getvalue()
        assert "This command will start the following instances" in output
        assert ">> web-1 i-00000001 dev (us-east-1)" in output

    @pytest.mark.parametrize("answer", ["y", "Yes", "YES"])
    def test_terminate_requires_literal_yes(self, console, matched, answer) -> None:
        result = ConfirmationGate(console, lambda _: answer).confirm(matched, "terminate")

        assert result.is_empty

    def test_terminate_accepts_yes(self, console, matched) -> None:
        prompts = []

        def input_func(prompt: str) -> str:
            prompts.append(prompt)
            return "yes"

        result = ConfirmationGate(console, input_func).confirm(matched, "terminate")

        assert result == matched
        assert "Only 'yes' will be accepted" in prompts[0]

    def test_force_skips_prompt(self, console, matched) -> None:
        input_func = MagicMock()

        result = ConfirmationGate(console, input_func).confirm(matched, "terminate", force=True)

        assert result == matched
        input_func.assert_not_called()

    def test_eof_counts_as_no(self, console, matched) -> None:
        input_func = MagicMock(side_effect=EOFError)

        result = ConfirmationGate(console, input_func).confirm(matched, "start")

        assert result.is_empty
