import pytest

from common.errors import ConfigurationError
from config import MAX_TREE_DEPTH, MixerConfig
from crypto import CURVE_ORDER


class TestMixerConfig:

    def test_defaults_are_valid(self):
        config = MixerConfig()
        assert config.field_modulus == CURVE_ORDER
        assert config.capacity == 2 ** config.tree_depth
        assert config.legacy_nullifier_hash is False

    @pytest.mark.parametrize("depth", [0, -1, MAX_TREE_DEPTH + 1])
    def test_rejects_bad_depth(self, depth):
        with pytest.raises(ConfigurationError):
            MixerConfig(tree_depth=depth)

    def test_rejects_non_permutation_exponent(self):
        # 3 divides r - 1 for BN254, so x^3 is not a permutation
        with pytest.raises(ConfigurationError):
            MixerConfig(mimc_exponent=3)

    def test_rejects_zero_rounds(self):
        with pytest.raises(ConfigurationError):
            MixerConfig(mimc_rounds=0)

    def test_rejects_empty_root_history(self):
        with pytest.raises(ConfigurationError):
            MixerConfig(root_history_size=0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            MixerConfig(tree_depth=0)

    def test_dict_round_trip(self):
        config = MixerConfig(tree_depth=3, mimc_rounds=7, legacy_nullifier_hash=True, log_file=None)
        assert MixerConfig.from_dict(config.to_dict()) == config

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            MixerConfig.from_dict({"tree_depth": 3, "depth": 3})

    def test_hash_params_follow_config(self):
        params = MixerConfig(mimc_rounds=9, mimc_seed="other").hash_params()
        assert params.rounds == 9
        assert params.seed == "other"
        assert params.modulus == CURVE_ORDER
        assert len(params.constants) == 9
