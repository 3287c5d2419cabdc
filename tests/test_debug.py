import torch

from mpm_step.mpm_core.mpm_model import MPMModel
from mpm_step.utils.debug import debug_print, debug_tensor_info, get_tensor_stats, is_debug_enabled

from conftest import make_config, make_particles


def test_debug_disabled_by_default(monkeypatch, capsys):
    monkeypatch.delenv("MPM_DEBUG", raising=False)

    debug_print("hidden")
    debug_tensor_info("hidden", torch.ones(3))

    assert not is_debug_enabled()
    assert capsys.readouterr().out == ""


def test_debug_env_var(monkeypatch, capsys):
    monkeypatch.setenv("MPM_DEBUG", "1")

    debug_tensor_info("grid", torch.tensor([1.0, 2.0, 3.0]))

    assert "[grid] shape=(3,)" in capsys.readouterr().out


def test_debug_env_var_false_values(monkeypatch):
    for value in ("0", "", "false", "False", "off", " no "):
        monkeypatch.setenv("MPM_DEBUG", value)
        assert not is_debug_enabled()


def test_tensor_stats():
    assert get_tensor_stats(torch.tensor([1.0, 2.0, 6.0])) == (1.0, 6.0, 3.0, 0)
    assert get_tensor_stats(torch.empty(0)) == (0.0, 0.0, 0.0, 0)


def test_tensor_stats_skip_nonfinite_entries():
    stats = get_tensor_stats(torch.tensor([[1.0, float("nan")], [float("inf"), 3.0]]))

    assert (stats.min, stats.max, stats.mean) == (1.0, 3.0, 2.0)
    assert stats.nonfinite == 2


def test_nonfinite_entries_are_reported(monkeypatch, capsys):
    monkeypatch.setenv("MPM_DEBUG", "1")

    debug_tensor_info("stress", torch.tensor([0.0, float("nan")]))

    assert "nonfinite=1" in capsys.readouterr().out


def test_step_reports_phases_in_debug_mode(monkeypatch, capsys):
    monkeypatch.setenv("MPM_DEBUG", "1")
    x, v, C, F = make_particles(1, 4)

    MPMModel(make_config())(x, v, C, F)

    printed = capsys.readouterr().out
    assert "[P2G grid_m]" in printed
    assert "[Grid velocity]" in printed
    assert "[G2P velocity]" in printed
