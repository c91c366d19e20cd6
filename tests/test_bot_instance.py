import asyncio
from types import SimpleNamespace

from bot_instance import BotInstance
from conversation import InboundMessage
from persona import welcome_message
from sheet_client import StaticSource


class FakeGenerator:
    async def generate(self, turns, persona_text):
        return 'Noel: "Of course!"'


class FakeMessage:
    def __init__(self, content, channel_id=7):
        self.content = content
        self.channel = SimpleNamespace(id=channel_id, sent=[])
        self.replies = []

        async def send(text):
            self.channel.sent.append(text)

        self.channel.send = send

    async def reply(self, text):
        self.replies.append(text)


def _bot():
    return BotInstance(token="token", character_name="Noel", source=StaticSource("Noel"), generator=FakeGenerator())


def test_slash_commands_are_registered():
    names = {command.name for command in _bot().tree.get_commands()}

    assert names == {"ping", "ver", "menu", "reset", "status"}


def test_prefix_commands_reply_directly():
    bot = _bot()
    message = FakeMessage("!ping")

    assert asyncio.run(bot._handle_prefix_command(message)) is True
    assert message.replies == ["Pong!"]
    assert asyncio.run(bot._handle_prefix_command(FakeMessage("hello"))) is False


def test_queued_message_is_answered_in_channel():
    bot = _bot()
    message = FakeMessage("hello")
    inbound = InboundMessage(7, 42, "Aria", "hello")

    asyncio.run(bot._process_request(message=message, inbound=inbound))

    assert message.replies == [welcome_message("Aria", "Noel")]
    assert len(bot.engine.history.get(7)) == 4
