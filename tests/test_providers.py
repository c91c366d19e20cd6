import asyncio
from types import SimpleNamespace

import pytest

import providers
from errors import RateLimited, Unrecoverable
from history import Turn
from providers import ReplyGenerator

PROVIDER = {"name": "Test", "url": "http://localhost/v1", "key": "test-key", "model": "test-model"}


class StatusError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"Error code: {status_code}")
        self.status_code = status_code


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


class FakeClient:
    def __init__(self, outcomes):
        self.completions = FakeCompletions(outcomes)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(providers.asyncio, "sleep", fake_sleep)
    monkeypatch.setattr(providers.random, "random", lambda: 0.0)
    return recorded


def _generate(client, **kwargs):
    generator = ReplyGenerator(provider=PROVIDER, client=client, **kwargs)
    return asyncio.run(generator.generate([Turn.user(1, "Aria", "hello")], "You are Noel."))


def test_retries_rate_limits_then_succeeds(sleeps):
    client = FakeClient([StatusError(429), StatusError(429), StatusError(429), 'Noel: "Hi!"'])

    assert _generate(client) == 'Noel: "Hi!"'
    assert len(client.completions.calls) == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_other_errors_are_not_retried(sleeps):
    client = FakeClient([StatusError(500), 'Noel: "never"'])

    with pytest.raises(Unrecoverable):
        _generate(client)
    assert len(client.completions.calls) == 1
    assert sleeps == []


def test_exhausted_retries_raise_rate_limited(sleeps):
    client = FakeClient([StatusError(429)] * 5)

    with pytest.raises(RateLimited):
        _generate(client)
    assert len(client.completions.calls) == 5
    # no sleep after the final attempt
    assert sleeps == [1.0, 2.0, 4.0, 8.0]


def test_single_attempt_never_sleeps(sleeps):
    client = FakeClient([StatusError(429)])

    with pytest.raises(RateLimited):
        _generate(client, max_attempts=1)
    assert sleeps == []


def test_missing_key_is_unrecoverable(sleeps):
    generator = ReplyGenerator(provider=dict(PROVIDER, key=""))

    with pytest.raises(Unrecoverable):
        asyncio.run(generator.generate([], "You are Noel."))
    assert sleeps == []


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        ReplyGenerator(provider=PROVIDER, max_attempts=0)


def test_is_rate_limit_error():
    assert providers.is_rate_limit_error(StatusError(429))
    assert providers.is_rate_limit_error(RuntimeError("RESOURCE_EXHAUSTED: quota"))
    assert not providers.is_rate_limit_error(StatusError(503))


def test_backoff_delay_doubles_with_jitter(monkeypatch):
    monkeypatch.setattr(providers.random, "random", lambda: 0.5)

    assert providers.backoff_delay(0) == 1.5
    assert providers.backoff_delay(3) == 8.5


def test_chat_messages_label_speakers():
    messages = providers.to_chat_messages(
        [Turn.user(1, "Aria", "hello"), Turn.agent("Welcome!")], "Noel"
    )

    assert messages == [
        {"role": "user", "content": 'User "Aria": "hello"'},
        {"role": "assistant", "content": 'Noel: "Welcome!"'},
    ]


def test_system_prompt_is_sent_first(sleeps):
    client = FakeClient(["ok"])
    _generate(client)

    sent = client.completions.calls[0]
    assert sent["model"] == "test-model"
    assert sent["messages"][0] == {"role": "system", "content": "You are Noel."}
    assert sent["messages"][1]["content"] == 'User "Aria": "hello"'
