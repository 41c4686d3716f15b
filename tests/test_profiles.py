import pytest

from src.relife.errors import ConfigurationError
from src.relife.profiles import load_profile, load_profiles

from conftest import PROFILES_PATH

def test_bundled_profiles_load():
    profiles = load_profiles(PROFILES_PATH)
    assert {"relife", "relife-classic"} <= set(profiles)

def test_default_profile_modes(profile):
    assert set(profile.modes) == {"abc", "single", "chat"}
    abc = profile.policy_for("abc")
    assert abc.structured
    assert abc.required == ("background", "timeline", "target")
    assert len(abc.skeleton["routes"]) == 3
    assert len(abc.skeleton["plan30d"]) == 4
    assert not profile.policy_for("chat").structured
    assert profile.policy_for("chat").required == ("question",)

def test_unconfigured_mode_uses_default_mode_policy(classic_profile):
    assert classic_profile.policy_for("chat") is classic_profile.policy_for("abc")
    assert len(classic_profile.policy_for("abc").skeleton["branches"]) == 3

def test_unknown_profile_is_configuration_error():
    with pytest.raises(ConfigurationError):
        load_profile("nope", PROFILES_PATH)

def test_missing_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_profiles(tmp_path / "profiles.yaml")

def test_structured_mode_without_skeleton_is_rejected(tmp_path):
    p = tmp_path / "profiles.yaml"
    p.write_text(
        "broken:\n"
        "  default_mode: abc\n"
        "  modes:\n"
        "    abc:\n"
        "      required: [background]\n"
        "      policy: structured\n"
        "      schema: {text: str}\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigurationError):
        load_profiles(p)

def test_minimal_profile_gets_identity_aliases(tmp_path):
    p = tmp_path / "profiles.yaml"
    p.write_text(
        "mini:\n"
        "  default_mode: chat\n"
        "  modes:\n"
        "    chat:\n"
        "      required: [question]\n",
        encoding="utf-8",
    )
    prof = load_profile("mini", p)
    assert prof.aliases["background"] == ("background",)
    assert prof.policy_for("chat").schema == {"text": "str"}
    assert prof.default_language == "zh"
