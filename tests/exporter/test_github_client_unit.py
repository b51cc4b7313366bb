"""Unit tests for GitHubClient using httpx.MockTransport."""

import asyncio
from typing import Callable, List

import httpx
import pytest

from actions_exporter.github import GitHubAPIError, GitHubClient, RateLimitError

API = "https://api.github.com"


def run_async(coro):
    return asyncio.run(coro)


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> GitHubClient:
    kwargs.setdefault("base_delay", 0.0)
    return GitHubClient(
        token="ghp_test", transport=httpx.MockTransport(handler), **kwargs
    )


def _call(client: GitHubClient, method: str, *args):
    async def scenario():
        async with client:
            return await getattr(client, method)(*args)

    return run_async(scenario())


class TestBilling:
    def test_org_billing(self):
        requests: List[httpx.Request] = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "total_minutes_used": 305,
                    "total_paid_minutes_used": 0,
                    "included_minutes": 3000,
                    "minutes_used_breakdown": {"UBUNTU": 205, "MACOS": 10},
                },
            )

        billing = _call(_client(handler), "get_actions_billing_org", "acme")

        assert billing.total_minutes_used == 305
        assert billing.included_minutes == 3000
        assert billing.minutes_used_breakdown == {"UBUNTU": 205, "MACOS": 10}
        [request] = requests
        assert request.url.path == "/orgs/acme/settings/billing/actions"
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_user_billing(self):
        def handler(request):
            assert request.url.path == "/users/octocat/settings/billing/actions"
            return httpx.Response(200, json={"total_minutes_used": 12})

        billing = _call(_client(handler), "get_actions_billing_user", "octocat")

        assert billing.total_minutes_used == 12
        assert billing.minutes_used_breakdown == {}


class TestPagination:
    def test_follows_link_header(self):
        pages = {
            1: (
                {"total_count": 3, "runner_groups": [{"id": 1, "name": "default"}, {"id": 2, "name": "gpu"}]},
                {"Link": f'<{API}/orgs/acme/actions/runner-groups?per_page=100&page=2>; rel="next", '
                         f'<{API}/orgs/acme/actions/runner-groups?per_page=100&page=2>; rel="last"'},
            ),
            2: ({"total_count": 3, "runner_groups": [{"id": 3, "name": "arm"}]}, {}),
        }

        def handler(request):
            page = int(request.url.params.get("page", "1"))
            assert request.url.params["per_page"] == "100"
            body, headers = pages[page]
            return httpx.Response(200, json=body, headers=headers)

        groups = _call(_client(handler), "list_organization_runner_groups", "acme")

        assert [(g.id, g.name) for g in groups] == [(1, "default"), (2, "gpu"), (3, "arm")]

    def test_group_runners(self):
        def handler(request):
            assert request.url.path == "/orgs/acme/actions/runner-groups/7/runners"
            return httpx.Response(
                200,
                json={
                    "total_count": 1,
                    "runners": [
                        {
                            "id": 23,
                            "name": "runner-1",
                            "os": "linux",
                            "status": "online",
                            "busy": True,
                            "labels": [{"id": 5, "name": "self-hosted", "type": "read-only"}],
                        }
                    ],
                },
            )

        [runner] = _call(_client(handler), "list_group_runners", "acme", 7)

        assert runner.busy is True
        assert runner.status == "online"
        assert runner.labels[0].name == "self-hosted"

    def test_enterprise_runners(self):
        def handler(request):
            assert request.url.path == "/enterprises/megacorp/actions/runners"
            return httpx.Response(200, json={"total_count": 0, "runners": []})

        assert _call(_client(handler), "list_enterprise_runners", "megacorp") == []


class TestQueuedWorkflowRuns:
    def test_count(self):
        def handler(request):
            assert request.url.path == "/repos/acme/widgets/actions/runs"
            assert request.url.params["status"] == "queued"
            return httpx.Response(200, json={"total_count": 4, "workflow_runs": []})

        assert _call(_client(handler), "count_queued_workflow_runs", "acme", "widgets") == 4


class TestErrors:
    def test_retries_server_errors(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                return httpx.Response(502)
            return httpx.Response(200, json={"total_minutes_used": 1})

        billing = _call(_client(handler, max_retries=3), "get_actions_billing_org", "acme")

        assert billing.total_minutes_used == 1
        assert len(attempts) == 3

    def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(503, text="unavailable")

        with pytest.raises(GitHubAPIError) as exc_info:
            _call(_client(handler, max_retries=2), "get_actions_billing_org", "acme")

        assert exc_info.value.status_code == 503
        assert len(attempts) == 3

    def test_retries_transport_errors(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"total_minutes_used": 2})

        billing = _call(_client(handler), "get_actions_billing_org", "acme")

        assert billing.total_minutes_used == 2

    def test_persistent_transport_errors(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GitHubAPIError):
            _call(_client(handler, max_retries=1), "get_actions_billing_org", "acme")

    def test_client_error_is_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(GitHubAPIError) as exc_info:
            _call(_client(handler), "list_enterprise_runners", "megacorp")

        assert exc_info.value.status_code == 404
        assert len(attempts) == 1

    def test_exhausted_rate_limit(self):
        def handler(request):
            return httpx.Response(
                403,
                headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "0"},
            )

        with pytest.raises(RateLimitError) as exc_info:
            _call(_client(handler), "get_actions_billing_org", "acme")

        assert exc_info.value.retry_after == 0

    def test_too_many_requests_after_retries(self):
        def handler(request):
            return httpx.Response(429, headers={"retry-after": "30"})

        with pytest.raises(RateLimitError) as exc_info:
            _call(_client(handler, max_retries=1), "get_actions_billing_org", "acme")

        assert exc_info.value.retry_after == 30
