from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ConnectionClosedError

from ec2ctl.constants import Action
from ec2ctl.core.dispatcher import ActionDispatcher, AuthorizedProbe, probe, run_with_dry_run
from ec2ctl.core.errors import ActionRejected, InvalidAction, PermissionDenied
from ec2ctl.core.models import StateChange, TypeChange
from ec2ctl.providers.exceptions import ProviderAPIError, ProviderConnectionError
from fakes.fake_ec2_manager import make_instance


def dry_run_ok() -> ProviderAPIError:
    return ProviderAPIError("Request would have succeeded", error_code="DryRunOperation")


class TestProbe:
    def test_authorized_probe_commits_once(self) -> None:
        call = MagicMock(side_effect=[dry_run_ok(), ["done"]])

        authorized = probe("us-east-1", "start", call)
        result = authorized.commit()

        assert isinstance(authorized, AuthorizedProbe)
        assert result == ["done"]
        assert [c.args for c in call.call_args_list] == [(True,), (False,)]

    def test_second_commit_is_refused(self) -> None:
        call = MagicMock(side_effect=[dry_run_ok(), ["done"]])
        authorized = probe("us-east-1", "start", call)
        authorized.commit()

        with pytest.raises(RuntimeError, match="already committed"):
            authorized.commit()

        assert call.call_count == 2

    def test_unauthorized_dry_run_never_commits(self) -> None:
        call = MagicMock(
            side_effect=ProviderAPIError("not allowed", error_code="UnauthorizedOperation")
        )

        with pytest.raises(PermissionDenied) as exc_info:
            run_with_dry_run("us-east-1", "stop", call)

        assert exc_info.value.region == "us-east-1"
        assert exc_info.value.error_code == "UnauthorizedOperation"
        call.assert_called_once_with(True)

    def test_connection_error_on_dry_run_is_permission_denied(self) -> None:
        call = MagicMock(side_effect=ProviderConnectionError("unreachable"))

        with pytest.raises(PermissionDenied):
            run_with_dry_run("us-east-1", "stop", call)

        call.assert_called_once_with(True)

    def test_dry_run_returning_normally_is_not_authorization(self) -> None:
        call = MagicMock(return_value=[])

        with pytest.raises(PermissionDenied, match="without authorization"):
            run_with_dry_run("us-east-1", "stop", call)

        call.assert_called_once_with(True)

    def test_failed_commit_is_action_rejected(self) -> None:
        call = MagicMock(
            side_effect=[
                dry_run_ok(),
                ProviderAPIError("bad state", error_code="IncorrectInstanceState"),
            ]
        )

        with pytest.raises(ActionRejected) as exc_info:
            run_with_dry_run("eu-west-1", "start", call)

        assert exc_info.value.region == "eu-west-1"
        assert exc_info.value.error_code == "IncorrectInstanceState"


class TestDispatchRegion:
    def test_start_is_one_batched_call(self, fake_region, provider_factory) -> None:
        manager = fake_region(
            "us-east-1",
            [
                make_instance("i-00000001", state="stopped"),
                make_instance("i-00000002", state="stopped"),
            ],
        )

        changes = ActionDispatcher(provider_factory).dispatch(
            "us-east-1", "start", ["i-00000001", "i-00000002"]
        )

        assert changes == [
            StateChange("i-00000001", "stopped", "pending"),
            StateChange("i-00000002", "stopped", "pending"),
        ]
        assert manager.calls == [
            ("start", ["i-00000001", "i-00000002"], True),
            ("start", ["i-00000001", "i-00000002"], False),
        ]

    def test_hibernate_sets_hibernate_flag(self, fake_region, provider_factory) -> None:
        manager = fake_region("us-east-1", [make_instance("i-00000001")])

        ActionDispatcher(provider_factory).dispatch("us-east-1", Action.HIBERNATE, ["i-00000001"])

        assert manager.committed_calls() == [("stop", ["i-00000001"], True, False)]

    def test_terminate_is_batched(self, fake_region, provider_factory) -> None:
        manager = fake_region(
            "us-east-1", [make_instance("i-00000001"), make_instance("i-00000002")]
        )

        changes = ActionDispatcher(provider_factory).dispatch(
            "us-east-1", "terminate", ["i-00000001", "i-00000002"]
        )

        assert {c.new_state for c in changes} == {"shutting-down"}
        assert len(manager.committed_calls()) == 1

    def test_unchanged_state_is_reported(self, fake_region, provider_factory) -> None:
        manager = fake_region("us-east-1", [make_instance("i-00000001", state="stopped")])
        manager.report_unchanged.add("i-00000001")

        changes = ActionDispatcher(provider_factory).dispatch("us-east-1", "stop", ["i-00000001"])

        assert changes[0].unchanged

    def test_denied_probe_yields_error_result(self, fake_region, provider_factory) -> None:
        manager = fake_region("us-east-1", [make_instance("i-00000001")])
        manager.dry_run_code = "UnauthorizedOperation"

        result = ActionDispatcher(provider_factory).dispatch_region(
            "us-east-1", "stop", ["i-00000001"]
        )

        assert not result.succeeded
        assert isinstance(result.error, PermissionDenied)
        assert manager.committed_calls() == []

    def test_modify_type_probes_each_instance(self, fake_region, provider_factory) -> None:
        manager = fake_region(
            "us-east-1", [make_instance("i-00000001"), make_instance("i-00000002")]
        )

        changes = ActionDispatcher(provider_factory).dispatch(
            "us-east-1", "modify-type", ["i-00000001", "i-00000002"], instance_type="m5.large"
        )

        assert changes == [
            TypeChange("i-00000001", "m5.large"),
            TypeChange("i-00000002", "m5.large"),
        ]
        assert manager.calls == [
            ("modify_instance_type", "i-00000001", "m5.large", True),
            ("modify_instance_type", "i-00000001", "m5.large", False),
            ("modify_instance_type", "i-00000002", "m5.large", True),
            ("modify_instance_type", "i-00000002", "m5.large", False),
        ]

    def test_modify_type_aborts_after_first_failure(self, fake_region, provider_factory) -> None:
        manager = fake_region(
            "us-east-1",
            [
                make_instance("i-00000001"),
                make_instance("i-00000002"),
                make_instance("i-00000003"),
            ],
        )
        manager.modify_errors["i-00000002"] = ProviderAPIError(
            "instance must be stopped", error_code="IncorrectInstanceState"
        )

        result = ActionDispatcher(provider_factory).dispatch_region(
            "us-east-1", "modify-type", ["i-00000001", "i-00000002", "i-00000003"], "m5.large"
        )

        assert isinstance(result.error, ActionRejected)
        assert result.type_changes == (TypeChange("i-00000001", "m5.large"),)
        assert not any(call[1] == "i-00000003" for call in manager.calls)

    def test_modify_type_requires_instance_type(self, provider_factory) -> None:
        with pytest.raises(ValueError, match="target instance type"):
            ActionDispatcher(provider_factory).dispatch_region(
                "us-east-1", "modify-type", ["i-00000001"]
            )

    @pytest.mark.parametrize("action", ["status", None, "reboot"])
    def test_non_mutating_actions_are_invalid(self, provider_factory, action) -> None:
        with pytest.raises(InvalidAction):
            ActionDispatcher(provider_factory).dispatch_region("us-east-1", action, ["i-00000001"])

        assert provider_factory.requested == []


class TestDispatchAll:
    def test_failure_in_one_region_does_not_affect_others(
        self, fake_region, provider_factory
    ) -> None:
        fake_region("us-east-1", [make_instance("i-00000001", state="stopped")])
        broken = fake_region("eu-west-1", [make_instance("i-00000002", state="stopped")])
        broken.commit_error = ProviderAPIError("boom", error_code="InternalError")

        results = ActionDispatcher(provider_factory).dispatch_all(
            {"us-east-1": ["i-00000001"], "eu-west-1": ["i-00000002"]}, "start"
        )

        by_region = {result.region: result for result in results}
        assert by_region["us-east-1"].succeeded
        assert by_region["us-east-1"].changes == (StateChange("i-00000001", "stopped", "pending"),)
        assert isinstance(by_region["eu-west-1"].error, ActionRejected)

    def test_botocore_error_in_one_region_keeps_other_results(
        self, fake_region, provider_factory
    ) -> None:
        healthy = fake_region("us-east-1", [make_instance("i-00000001", state="stopped")])
        broken = fake_region("eu-west-1", [make_instance("i-00000002", state="stopped")])
        closed = ConnectionClosedError(endpoint_url="https://ec2.eu-west-1.amazonaws.com")
        broken.commit_error = closed

        results = ActionDispatcher(provider_factory).dispatch_all(
            {"us-east-1": ["i-00000001"], "eu-west-1": ["i-00000002"]}, "start"
        )

        by_region = {result.region: result for result in results}
        assert healthy.committed_calls() == [("start", ["i-00000001"], False)]
        assert by_region["us-east-1"].changes == (StateChange("i-00000001", "stopped", "pending"),)
        assert isinstance(by_region["eu-west-1"].error, ActionRejected)
        assert by_region["eu-west-1"].error.__cause__ is closed

    def test_malformed_state_change_fails_only_its_region(
        self, fake_region, provider_factory
    ) -> None:
        fake_region("us-east-1", [make_instance("i-00000001", state="stopped")])
        broken = fake_region("eu-west-1", [make_instance("i-00000002", state="stopped")])

        def start_without_states(instance_ids, dry_run):
            if dry_run:
                raise dry_run_ok()
            return [{"InstanceId": instance_id} for instance_id in instance_ids]

        broken.start_instances = start_without_states

        results = ActionDispatcher(provider_factory).dispatch_all(
            {"us-east-1": ["i-00000001"], "eu-west-1": ["i-00000002"]}, "start"
        )

        by_region = {result.region: result for result in results}
        assert by_region["us-east-1"].succeeded
        assert isinstance(by_region["eu-west-1"].error, ActionRejected)
        assert isinstance(by_region["eu-west-1"].error.__cause__, KeyError)

    def test_unexpected_modify_error_keeps_earlier_type_changes(
        self, fake_region, provider_factory
    ) -> None:
        manager = fake_region(
            "us-east-1",
            [make_instance("i-00000001", state="stopped"), make_instance("i-00000002")],
        )
        manager.modify_errors["i-00000002"] = ConnectionClosedError(
            endpoint_url="https://ec2.us-east-1.amazonaws.com"
        )

        results = ActionDispatcher(provider_factory).dispatch_all(
            {"us-east-1": ["i-00000001", "i-00000002"]}, "modify-type", instance_type="m5.large"
        )

        assert results[0].type_changes == (TypeChange("i-00000001", "m5.large"),)
        assert isinstance(results[0].error, ActionRejected)

    def test_one_provider_call_per_region(self, fake_region, provider_factory) -> None:
        managers = [
            fake_region(region, [make_instance(f"i-0000000{n}") for n in range(1, 4)])
            for region in ("us-east-1", "eu-west-1")
        ]

        ActionDispatcher(provider_factory).dispatch_all(
            {
                "us-east-1": ["i-00000001", "i-00000002", "i-00000003"],
                "eu-west-1": ["i-00000001", "i-00000002", "i-00000003"],
            },
            "stop",
        )

        for manager in managers:
            assert len(manager.committed_calls()) == 1

    def test_empty_groups(self, provider_factory) -> None:
        assert ActionDispatcher(provider_factory).dispatch_all({}, "start") == []
