import gate
from persona import PromptBuilder, default_persona, welcome_message


def test_prompt_includes_persona_and_situation():
    prompt = PromptBuilder("Noel").build("You are Noel.", gate.ADDRESSED)

    assert prompt.startswith("You are Noel.")
    assert "You were explicitly called by name." in prompt
    assert "`[IGNORE]`" in prompt
    assert "{{" not in prompt


def test_group_chat_prompt_allows_declining():
    prompt = PromptBuilder("Noel").build("You are Noel.", gate.GROUP_CHAT)

    assert "Otherwise, output `[IGNORE]`." in prompt


def test_blank_persona_falls_back_to_default():
    prompt = PromptBuilder("Noel").build("   ", gate.ONE_ON_ONE)

    assert "receptionist of a merchant's guild" in prompt
    assert "{{CHARACTER_NAME}}" not in prompt


def test_welcome_message_names_both_sides():
    text = welcome_message("Aria", "Noel")

    assert text.startswith("Oh, Aria, nice to meet you!")
    assert "I'm Noel" in text
    assert "Noel" in default_persona("Noel")
