"""Unit tests for the GitHub API pollers."""

import asyncio
from typing import Dict, List

import pytest

from actions_exporter.config import ExporterSettings
from actions_exporter.github import (
    ActionsBilling,
    GitHubAPIError,
    Runner,
    RunnerGroup,
)
from actions_exporter.metrics import (
    BillingObserver,
    PrometheusRunnersObserver,
    RunnersObserver,
    WorkflowQueueObserver,
)
from actions_exporter.pollers import (
    BillingMetricsPoller,
    PollerConfigError,
    RunnersMetricsPoller,
    WorkflowQueuePoller,
)


def run_async(coro):
    return asyncio.run(coro)


def _settings(**overrides) -> ExporterSettings:
    values = {
        "webhook_secret": "s",
        "github_api_token": "ghp_test",
        "github_org": "acme",
    }
    values.update(overrides)
    return ExporterSettings(**values)


def _runner(runner_id: int, busy: bool, status: str = "online") -> Runner:
    return Runner(id=runner_id, name=f"runner-{runner_id}", busy=busy, status=status)


class FakeGitHubClient:
    def __init__(self) -> None:
        self.groups: List[RunnerGroup] = []
        self.group_runners: Dict[int, List[Runner]] = {}
        self.enterprise_runners: List[Runner] = []
        self.billing: Dict[str, ActionsBilling] = {}
        self.queued = 0
        self.fail: set = set()
        self.queue_requests: List[tuple] = []

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise GitHubAPIError(f"{name} failed", status_code=500)

    async def list_organization_runner_groups(self, org):
        self._maybe_fail("groups")
        return self.groups

    async def list_group_runners(self, org, group_id):
        self._maybe_fail("group_runners")
        return self.group_runners.get(group_id, [])

    async def list_enterprise_runners(self, enterprise):
        self._maybe_fail("enterprise")
        return self.enterprise_runners

    async def get_actions_billing_org(self, org):
        self._maybe_fail("billing_org")
        return self.billing[org]

    async def get_actions_billing_user(self, user):
        self._maybe_fail("billing_user")
        return self.billing[user]

    async def count_queued_workflow_runs(self, owner, repo):
        self.queue_requests.append((owner, repo))
        return self.queued


class RecordingRunnersObserver(RunnersObserver):
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def reset_registered_runners(self) -> None:
        self.events.append(("reset",))

    def increase_registered_runners(self, busy, status, runner_group) -> None:
        self.events.append(("increase", busy, status, runner_group))


@pytest.fixture
def github():
    return FakeGitHubClient()


class TestPollerConfiguration:
    def test_missing_org(self, github):
        poller = RunnersMetricsPoller(
            _settings(github_org=""), github, RecordingRunnersObserver()
        )

        with pytest.raises(PollerConfigError, match="github org not configured"):
            poller.start()

    def test_queue_poller_missing_org(self, github, registry):
        poller = WorkflowQueuePoller(
            _settings(github_org="", github_repo="widgets"),
            github,
            WorkflowQueueObserver(registry),
        )

        with pytest.raises(PollerConfigError, match="github org not configured"):
            poller.start()

    def test_queue_poller_owner_in_repo_needs_no_org(self, github, registry):
        poller = WorkflowQueuePoller(
            _settings(github_org="", github_repo="other-org/tools"),
            github,
            WorkflowQueueObserver(registry),
        )

        poller.validate()

        assert poller.repository() == ("other-org", "tools")

    @pytest.mark.parametrize("repo_setting", ["acme/", "/"])
    def test_queue_poller_repo_without_name(self, github, registry, repo_setting):
        poller = WorkflowQueuePoller(
            _settings(github_repo=repo_setting), github, WorkflowQueueObserver(registry)
        )

        with pytest.raises(PollerConfigError, match="github repo not configured"):
            poller.validate()

    def test_queue_poller_missing_token(self, github, registry):
        poller = WorkflowQueuePoller(
            _settings(github_api_token="", github_repo="acme/widgets"),
            github,
            WorkflowQueueObserver(registry),
        )

        with pytest.raises(PollerConfigError, match="github token not configured"):
            poller.validate()

    def test_missing_token(self, github):
        poller = RunnersMetricsPoller(
            _settings(github_api_token=""), github, RecordingRunnersObserver()
        )

        with pytest.raises(PollerConfigError, match="github token not configured"):
            poller.start()

    def test_missing_repo(self, github, registry):
        poller = WorkflowQueuePoller(_settings(), github, WorkflowQueueObserver(registry))

        with pytest.raises(PollerConfigError, match="github repo not configured"):
            poller.start()

    def test_billing_needs_org_or_user(self, github, registry):
        poller = BillingMetricsPoller(
            _settings(github_org=""), github, BillingObserver(registry)
        )

        with pytest.raises(PollerConfigError):
            poller.start()

    def test_billing_user_only_is_valid(self, github, registry):
        poller = BillingMetricsPoller(
            _settings(github_org="", github_user="octocat"),
            github,
            BillingObserver(registry),
        )

        poller.validate()

    def test_start_and_stop(self, github):
        poller = RunnersMetricsPoller(_settings(), github, RecordingRunnersObserver())

        async def scenario():
            poller.start()
            assert poller.running
            await poller.stop()
            assert not poller.running

        run_async(scenario())

    def test_collects_every_interval(self, github):
        observer = RecordingRunnersObserver()
        poller = RunnersMetricsPoller(_settings(), github, observer)
        poller.interval = 0.01

        async def scenario():
            poller.start()
            await asyncio.sleep(0.1)
            await poller.stop()

        run_async(scenario())

        assert observer.events.count(("reset",)) >= 2


class TestRunnersMetricsPoller:
    def test_counts_runners_per_group(self, github):
        github.groups = [RunnerGroup(id=1, name="default"), RunnerGroup(id=2, name="gpu")]
        github.group_runners = {
            1: [_runner(1, True), _runner(2, False)],
            2: [_runner(3, False, "offline")],
        }
        observer = RecordingRunnersObserver()
        poller = RunnersMetricsPoller(_settings(), github, observer)

        run_async(poller.collect())

        assert observer.events[0] == ("reset",)
        assert sorted(observer.events[1:]) == sorted(
            [
                ("increase", True, "online", "default"),
                ("increase", False, "online", "default"),
                ("increase", False, "offline", "gpu"),
            ]
        )

    def test_enterprise_runners_use_enterprise_name(self, github):
        github.enterprise_runners = [_runner(9, True)]
        observer = RecordingRunnersObserver()
        poller = RunnersMetricsPoller(
            _settings(github_enterprise="megacorp"), github, observer
        )

        run_async(poller.collect())

        assert observer.events == [("reset",), ("increase", True, "online", "megacorp")]

    @pytest.mark.parametrize("failing", ["groups", "group_runners", "enterprise"])
    def test_api_failure_leaves_gauges_reset(self, github, registry, failing):
        github.groups = [RunnerGroup(id=1, name="default")]
        github.group_runners = {1: [_runner(1, True)]}
        github.enterprise_runners = [_runner(2, False)]
        observer = PrometheusRunnersObserver(registry)
        observer.increase_registered_runners(True, "online", "stale")
        poller = RunnersMetricsPoller(
            _settings(github_enterprise="megacorp"), github, observer
        )
        github.fail.add(failing)

        run_async(poller.collect_safely())

        assert registry.get_sample_value(
            "runners_registered_total",
            {"runner_group": "stale", "busy": "true", "status": "online"},
        ) is None
        assert registry.get_sample_value(
            "runners_registered_total",
            {"runner_group": "default", "busy": "true", "status": "online"},
        ) is None


class TestBillingMetricsPoller:
    def test_org_and_user_billing(self, github, registry):
        github.billing = {
            "acme": ActionsBilling(
                total_minutes_used=305,
                included_minutes=3000,
                total_paid_minutes_used=5,
                minutes_used_breakdown={"UBUNTU": 300, "WINDOWS": 5},
            ),
            "octocat": ActionsBilling(total_minutes_used=12, included_minutes=2000),
        }
        poller = BillingMetricsPoller(
            _settings(github_user="octocat"), github, BillingObserver(registry)
        )

        run_async(poller.collect())

        assert registry.get_sample_value(
            "actions_total_minutes_used_minutes", {"org": "acme", "user": ""}
        ) == 305
        assert registry.get_sample_value(
            "actions_total_paid_minutes", {"org": "acme", "user": ""}
        ) == 5
        assert registry.get_sample_value(
            "actions_total_minutes_used_by_host_minutes",
            {"org": "acme", "user": "", "host_type": "WINDOWS"},
        ) == 5
        assert registry.get_sample_value(
            "actions_included_minutes", {"org": "", "user": "octocat"}
        ) == 2000

    def test_org_failure_does_not_skip_user(self, github, registry):
        github.billing = {"octocat": ActionsBilling(total_minutes_used=12)}
        github.fail.add("billing_org")
        poller = BillingMetricsPoller(
            _settings(github_user="octocat"), github, BillingObserver(registry)
        )

        run_async(poller.collect())

        assert registry.get_sample_value(
            "actions_total_minutes_used_minutes", {"org": "acme", "user": ""}
        ) is None
        assert registry.get_sample_value(
            "actions_total_minutes_used_minutes", {"org": "", "user": "octocat"}
        ) == 12


class TestWorkflowQueuePoller:
    @pytest.mark.parametrize(
        "repo_setting,expected",
        [("widgets", ("acme", "widgets")), ("other-org/tools", ("other-org", "tools"))],
    )
    def test_sets_queue_size(self, github, registry, repo_setting, expected):
        github.queued = 7
        poller = WorkflowQueuePoller(
            _settings(github_repo=repo_setting), github, WorkflowQueueObserver(registry)
        )

        run_async(poller.collect())

        assert github.queue_requests == [expected]
        owner, repo = expected
        assert registry.get_sample_value(
            "workflow_queue_size", {"org": owner, "repo": repo}
        ) == 7
