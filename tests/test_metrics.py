from prometheus_client import REGISTRY

from prometheus_metrics import metrics_manager


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_command_counter_increments():
    before = _sample("guild_desk_commands_handled_total", command="dice")
    metrics_manager.record_command("dice")

    assert _sample("guild_desk_commands_handled_total", command="dice") == before + 1


def test_gate_decision_labels():
    before = _sample("guild_desk_gate_decisions_total", kind="suppress", reason="declined")
    metrics_manager.record_gate_decision("suppress", "declined")

    assert _sample("guild_desk_gate_decisions_total", kind="suppress", reason="declined") == before + 1


def test_bot_status_info():
    metrics_manager.update_bot_status("v3.10.0", "Noel", online=True)

    assert _sample("guild_desk_bot_info", version="v3.10.0", persona="Noel", online="True") == 1.0


def test_metrics_server_disabled_for_port_zero():
    metrics_manager.start_metrics_server(0)

    assert metrics_manager._started is False
