import sys

from safezone import cli
from safezone.config import Config, load_config, save_config
from safezone.models import EmergencyContact


def test_build_controller_uses_config():
    cfg = Config(trigger_words=["Help", "fire"])
    cfg.emergency_contact = EmergencyContact(id="1", name="Sam", phone="555-0100")
    cfg.cycle.period_seconds = 2.5

    controller = cli.build_controller(cfg)

    assert controller.contact == cfg.emergency_contact
    assert controller.lexicon.words() == ["help", "fire"]
    assert controller.cycle.period_seconds == 2.5
    assert not controller.feature_enabled


def test_triggers_add_saves_config(tmp_path, monkeypatch, capsys):
    path = tmp_path / "safezone_config.yml"
    save_config(str(path), Config(trigger_words=["help"]))
    monkeypatch.setattr(
        sys, "argv", ["safezone", "triggers", "add", " Fire ", "--config", str(path)]
    )

    assert cli.main() == 0
    assert load_config(str(path)).trigger_words == ["help", "fire"]
    assert capsys.readouterr().out.split() == ["help", "fire"]


def test_triggers_remove_missing_word_leaves_config(tmp_path, monkeypatch):
    path = tmp_path / "safezone_config.yml"
    save_config(str(path), Config(trigger_words=["help", "sos"]))
    monkeypatch.setattr(
        sys, "argv", ["safezone", "triggers", "remove", "fire", "--config", str(path)]
    )

    assert cli.main() == 0
    assert load_config(str(path)).trigger_words == ["help", "sos"]
