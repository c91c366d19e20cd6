from response_sanitizer import clean, remove_thinking_tags, sanitize_response


def test_strips_persona_label_and_quotes():
    assert clean('Noel: "Hello there!"', "Noel") == "Hello there!"
    assert clean('"Noel": "Hello there!"', "Noel") == "Hello there!"
    assert clean('noel：「いらっしゃいませ」', "Noel") == "いらっしゃいませ"


def test_strips_one_layer_of_enclosing_quotes():
    assert clean('"Just quoted"', "Noel") == "Just quoted"
    assert clean('""double""', "Noel") == '"double"'


def test_unexpected_shapes_pass_through_trimmed():
    assert clean("  plain reply \n", "Noel") == "plain reply"
    assert clean('Aria: "not me"', "Noel") == 'Aria: "not me"'
    assert clean("", "Noel") == ""
    assert clean(None, "Noel") == ""


def test_thinking_blocks_are_removed():
    assert remove_thinking_tags("<think>plan</think>Answer") == "Answer"
    assert remove_thinking_tags("<thinking>\nsteps\n</thinking>\nAnswer") == "Answer"
    assert remove_thinking_tags("leaked reasoning</think>Answer") == "Answer"


def test_sanitize_keeps_ignore_sentinel_detectable():
    assert sanitize_response('<think>nothing to add</think>Noel: "[IGNORE]"', "Noel") == "[IGNORE]"
    assert sanitize_response("[IGNORE]", "Noel") == "[IGNORE]"
