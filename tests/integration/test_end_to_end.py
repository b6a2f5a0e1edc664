"""Client and server exercised together over an in-process transport."""

import httpx
import pytest

from focus_sync.client.api_client import ApiClient, ApiRequestError
from focus_sync.client.connectivity import ConnectivityMonitor
from focus_sync.client.local_store import LocalStore
from focus_sync.client.sync_client import SyncClient
from focus_sync.core.config import constants
from focus_sync.core.errors import TransientNetworkFailure
from focus_sync.domain.records import new_task, new_timer_entry, toggle_task


@pytest.fixture
def api(app) -> ApiClient:
    return ApiClient(base_url="http://testserver", transport=httpx.ASGITransport(app=app))


@pytest.mark.integration
class TestApiClient:
    async def test_register_login_refresh(self, api):
        registered = await api.register(email="grace@example.com", password="s3cret", display_name="Grace")
        logged_in = await api.login(email="grace@example.com", password="s3cret")
        refreshed = await api.refresh(refresh_token=logged_in.tokens.refresh_token)

        assert registered.user.email == "grace@example.com"
        assert logged_in.user.id == registered.user.id
        assert refreshed.tokens.refresh_token != logged_in.tokens.refresh_token

    async def test_auth_errors_carry_status_and_message(self, api):
        with pytest.raises(ApiRequestError) as excinfo:
            await api.login(email="nobody@example.com", password="x")

        assert excinfo.value.status_code == 401
        assert excinfo.value.message == "Invalid credentials."

    async def test_ping(self, api):
        assert await api.ping() is True

    async def test_unreachable_server_is_transient(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        unreachable = ApiClient(base_url="http://testserver", transport=httpx.MockTransport(refuse))

        with pytest.raises(TransientNetworkFailure):
            await unreachable.sync([], [])
        assert await unreachable.ping() is False

    async def test_server_error_is_transient(self):
        failing = ApiClient(
            base_url="http://testserver",
            transport=httpx.MockTransport(lambda request: httpx.Response(503, json={"message": "down"})),
        )

        with pytest.raises(TransientNetworkFailure) as excinfo:
            await failing.sync([], [])
        assert excinfo.value.status_code == 503

    async def test_unreadable_body_is_transient(self):
        garbled = ApiClient(
            base_url="http://testserver",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )

        with pytest.raises(TransientNetworkFailure):
            await garbled.sync([], [])


@pytest.mark.integration
class TestOfflineFirstScenario:
    async def test_offline_edits_reach_the_server_on_reconnect(self, api, tmp_path):
        session = await api.register(email="grace@example.com", password="s3cret", display_name="Grace")
        connectivity = ConnectivityMonitor(online=False)
        client = SyncClient(store=LocalStore(tmp_path / "device-a"), api=api, connectivity=connectivity)
        client.set_tokens(session.tokens)

        draft = new_task("Write report")
        entry = new_timer_entry(25 * 60 * 1000, task_id=draft.id)
        assert await client.sync([draft], [entry]) is None

        await connectivity.mark_online()

        assert client.last_result is not None
        assert client.last_result.message == constants.SYNC_MESSAGE_PROFILE
        assert [record.id for record in client.hydrate().tasks] == [draft.id]

    async def test_second_device_sees_newest_revision(self, api, tmp_path):
        session = await api.register(email="grace@example.com", password="s3cret", display_name="Grace")
        device_a = SyncClient(store=LocalStore(tmp_path / "a"), api=api)
        device_b = SyncClient(store=LocalStore(tmp_path / "b"), api=api)
        device_a.set_tokens(session.tokens)
        device_b.set_tokens(session.tokens)

        original = new_task("Plan sprint")
        await device_a.sync([original], [])
        pulled = await device_b.sync([], [])
        assert [record.id for record in pulled.tasks] == [original.id]

        done = toggle_task(pulled.tasks[0])
        await device_b.sync([done], [])
        result = await device_a.sync([original], [])

        assert result.tasks[0].completed is True
        assert device_a.hydrate().tasks[0].completed is True

    async def test_anonymous_client_keeps_its_own_records(self, api, local_store):
        client = SyncClient(store=local_store, api=api)
        record = new_task("Local only")

        result = await client.sync([record], [])

        assert result.message == constants.SYNC_MESSAGE_ANONYMOUS
        assert [task.id for task in local_store.load_tasks()] == [record.id]
