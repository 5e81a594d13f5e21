from dataclasses import dataclass, asdict, fields
from typing import Optional

from common.errors import ConfigurationError
from crypto import CURVE_ORDER
from utils import MiMCParams

MAX_TREE_DEPTH = 32


@dataclass
class MixerConfig:
    """混币器关系的配置参数"""
    # 电路字段模数；Groth16 后端要求其等于 BN254 的标量域阶
    field_modulus: int = CURVE_ORDER
    # 默克尔树深度是电路参数：不同深度即不同电路版本，需要重新 setup
    tree_depth: int = 5
    mimc_exponent: int = 5
    mimc_rounds: int = 110
    mimc_seed: str = "seed"
    # True 时作废哈希与叶子承诺相同（兼容旧格式，会暴露被花费的叶子）
    legacy_nullifier_hash: bool = False
    nullifier_domain: str = "asset-mixer/nullifier"
    root_history_size: int = 30
    log_file: Optional[str] = "mixer.log"
    log_level: str = "INFO"

    def __post_init__(self):
        if not 1 <= self.tree_depth <= MAX_TREE_DEPTH:
            raise ConfigurationError(f"树深度必须在 [1, {MAX_TREE_DEPTH}] 内，得到 {self.tree_depth}")
        if self.field_modulus < 3:
            raise ConfigurationError("字段模数无效")
        if self.root_history_size < 1:
            raise ConfigurationError("历史根数量至少为 1")
        # 提前校验哈希参数
        self.hash_params()

    def hash_params(self) -> MiMCParams:
        return MiMCParams(
            modulus=self.field_modulus,
            exponent=self.mimc_exponent,
            rounds=self.mimc_rounds,
            seed=self.mimc_seed,
        )

    @property
    def capacity(self) -> int:
        return 1 << self.tree_depth

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'MixerConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"未知配置项: {sorted(unknown)}")
        return cls(**data)
