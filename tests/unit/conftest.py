"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from botocore.exceptions import ClientError

from aws_provisioner.config import load
from aws_provisioner.waiter import CancelToken

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from aws_provisioner.config.schema import Config

_PROVISIONER_ENV_VARS = (
    "AWS_REGION",
    "AWS_PROFILE",
    "AWSP_STACK",
    "AWSP_ENDPOINT_URL",
    "AWSP_POLL_INTERVAL",
    "AWSP_MAX_ATTEMPTS",
    "AWSP_LOG",
)


@pytest.fixture(autouse=True)
def _clean_provisioner_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove AWS/AWSP_* env vars so unit tests don't leak host config."""
    for var in _PROVISIONER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


@pytest.fixture
def client_error() -> Callable[..., ClientError]:
    """Factory for real botocore ``ClientError`` instances."""

    def _make(code: str, status: int = 400, operation: str = "GetThing") -> ClientError:
        return ClientError(
            {
                "Error": {"Code": code, "Message": f"{code} happened"},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    return _make


class FakeClock:
    """Manual monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeSleepToken(CancelToken):
    """Cancel token whose ``sleep`` advances a :class:`FakeClock` instead of blocking."""

    def __init__(self, clock: FakeClock, *, timeout: float | None = None) -> None:
        super().__init__(timeout=timeout, clock=clock)
        self.fake_clock = clock
        self.sleeps: list[float] = []
        self.cancel_after_sleeps: int | None = None

    def sleep(self, seconds: float) -> bool:
        self.sleeps.append(seconds)
        if self.cancel_after_sleeps is not None and len(self.sleeps) >= self.cancel_after_sleeps:
            self.cancel("stopped by test")
        remaining = self.remaining()
        self.fake_clock.now += seconds if remaining is None else min(seconds, remaining)
        return self.cancelled


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token(clock: FakeClock) -> FakeSleepToken:
    return FakeSleepToken(clock)


@pytest.fixture
def make_token(clock: FakeClock) -> Callable[..., FakeSleepToken]:
    def _make(*, timeout: float | None = None) -> FakeSleepToken:
        return FakeSleepToken(clock, timeout=timeout)

    return _make
