"""Tests for the application wiring and service loop."""

import pytest

from tsbots import app as app_module
from tsbots.app import BotServiceApp
from tsbots.config import AppConfig, ControlServiceConfig, StorageConfig
from tsbots.core.errors import ConnectFailedError
from tsbots.teamspeak.connections import ConnectionPool


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        storage=StorageConfig(db_path=":memory:"),
        service=ControlServiceConfig(host="127.0.0.1", port=0),
    )


@pytest.fixture
def service(config, connector, monkeypatch) -> BotServiceApp:
    monkeypatch.setattr(
        app_module,
        "ConnectionPool",
        lambda query_config: ConnectionPool(query_config, connector=connector),
    )
    return BotServiceApp(config)


class TestBotServiceApp:
    @pytest.mark.asyncio
    async def test_start_tick_stop(self, service, connector):
        await service.start()
        try:
            assert service.pool.count_connections() == 1
            assert [t.bot_type for t in service.manager.registry.types()] == [
                "GreetingBot",
                "ChatBot",
            ]
            assert service.control.address is not None

            await service.tick()
            assert not service.stopping
        finally:
            await service.stop()

        assert connector.clients[0].quit_called
        assert service.control.address is None

    @pytest.mark.asyncio
    async def test_start_fails_without_query_server(self, service, connector):
        connector.fail = True
        with pytest.raises(ConnectFailedError):
            await service.start()
        await service.stop()

    @pytest.mark.asyncio
    async def test_run_returns_after_stop_request(self, service):
        await service.start()
        service.request_stop()

        await service.run()
        await service.stop()

        assert service.stopping

    @pytest.mark.asyncio
    async def test_stop_request_over_control_socket(self, service):
        await service.start()
        try:
            assert await service.control.handle_request("stop") == {"stop": "ok"}
            assert service.stopping
        finally:
            await service.stop()
