from pathlib import Path

import pytest
from omegaconf import OmegaConf

from mpm_step.core.config import MPMConfig, load_config
from mpm_step.core.material_presets import MATERIAL_PRESETS
from mpm_step.utils.validation import ConfigurationError


def test_defaults_mirror_operator_attributes():
    config = MPMConfig()

    assert (config.dt, config.dx, config.E, config.nu, config.m_p, config.V_p) == (0.01, 0.01, 50.0, 0.3, 100.0, 10.0)
    assert config.gravity == (0.0, 0.0, 0.0)
    assert config.resolution == (100, 100, 100)
    assert config.boundary == "slip"
    assert config.num_cells == 100 ** 3
    assert config.dim == 3


def test_config_is_immutable():
    config = MPMConfig()

    with pytest.raises(Exception):
        config.dt = 1.0


@pytest.mark.parametrize("overrides, message", [
    (dict(resolution=(8,), gravity=(0.0,)), "2D or 3D"),
    (dict(resolution=(8, 2), gravity=(0.0, 0.0)), "resolution entry >= 3"),
    (dict(boundary="reflect"), "Unknown boundary policy"),
    (dict(boundary_width=-1), "boundary_width >= 0"),
    (dict(clip_bound=1.5), "clip_bound"),
    (dict(det_epsilon=0.0), "det_epsilon > 0"),
    (dict(gravity=(0.0, -9.8)), "Gravity length must be equal to 3, but is 2"),
])
def test_invalid_configuration(overrides, message):
    with pytest.raises(ConfigurationError, match=message):
        MPMConfig(**overrides)


def test_from_omegaconf_reads_sections():
    cfg = OmegaConf.create({
        "mpm": {
            "dt": 1e-3,
            "dx": 0.05,
            "gravity": [0.0, -9.8],
            "resolution": [20, 20],
            "boundary": "sticky",
        },
        "material": {
            "youngs_modulus": 400.0,
            "poissons_ratio": 0.2,
            "particle_volume": 0.5,
            "density": 3.0,
        },
    })

    config = MPMConfig.from_omegaconf(cfg)

    assert config.dt == 1e-3
    assert config.gravity == (0.0, -9.8)
    assert config.resolution == (20, 20)
    assert config.boundary == "sticky"
    assert config.E == 400.0
    assert config.nu == 0.2
    assert config.V_p == 0.5
    assert config.m_p == pytest.approx(1.5)


def test_particle_mass_overrides_density():
    config = MPMConfig.from_omegaconf({
        "mpm": {"gravity": [0.0, 0.0], "resolution": [10, 10]},
        "material": {"density": 3.0, "particle_volume": 0.5, "particle_mass": 7.0},
    })

    assert config.m_p == 7.0


def test_material_preset_fills_missing_values(capsys):
    config = MPMConfig.from_omegaconf({
        "mpm": {"gravity": [0.0, 0.0], "resolution": [10, 10]},
        "material": {"preset": "rubber", "poissons_ratio": 0.4, "particle_volume": 1e-3},
    })

    assert config.E == MATERIAL_PRESETS["rubber"]["youngs_modulus"]
    assert config.nu == 0.4
    assert config.m_p == pytest.approx(MATERIAL_PRESETS["rubber"]["density"] * 1e-3)
    assert "[Material] Applying preset: 'rubber'" in capsys.readouterr().out


def test_unknown_preset():
    with pytest.raises(ConfigurationError, match="Unknown material preset"):
        MPMConfig.from_omegaconf({"material": {"preset": "unobtainium"}})


def test_to_dict_uses_plain_lists():
    d = MPMConfig(gravity=(0.0, -1.0), resolution=(4, 4)).to_dict()

    assert d["gravity"] == [0.0, -1.0]
    assert d["resolution"] == [4, 4]
    assert MPMConfig(**d) == MPMConfig(gravity=(0.0, -1.0), resolution=(4, 4))


def test_load_config(tmp_path, capsys):
    path = tmp_path / "step.yaml"
    path.write_text("mpm:\n  dt: 0.002\n")

    cfg = load_config(path)

    assert cfg.mpm.dt == 0.002
    assert "[Config] Loaded configuration" in capsys.readouterr().out


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_config_requires_mpm_section(tmp_path):
    path = tmp_path / "step.yaml"
    path.write_text("material:\n  preset: jelly\n")

    with pytest.raises(ConfigurationError, match="mpm"):
        load_config(path)


def test_shipped_default_config_is_valid():
    cfg = load_config(Path(__file__).resolve().parent.parent / "configs" / "default.yaml")

    config = MPMConfig.from_omegaconf(cfg)

    assert config.dim == 3
    assert config.m_p == pytest.approx(MATERIAL_PRESETS["jelly"]["density"] * 2.0e-6)
