"""
承诺 / 作废哈希方案

- 叶子承诺：commitment = H(nullifier, secret)，存款时公开并插入默克尔树。
- 作废哈希：取款时作为公开输入披露，供外部已花费集合防止重复花费。
  * 默认（域分离）：nullifier_hash = H(tag, nullifier)，tag 由域字符串派生，
    与任何叶子承诺都不相等，观察者无法用它匹配树中的叶子。
  * legacy_nullifier_hash=True：nullifier_hash = H(nullifier, secret)，
    与叶子承诺数值相同（兼容旧格式）。

同一方案既有原生实现（CommitmentScheme），也有电路内实现（CommitmentGadget），
两者使用同一组注入的哈希参数，必须逐位一致。
"""
from config import MixerConfig
from crypto import hash_to_scalar
from common.datastructures import Note
from gadgets.mimc import MiMCGadget
from snark.r1cs import ConstraintSystem, LinearCombination
from utils import MiMCHasher, to_field


def nullifier_domain_tag(config: MixerConfig) -> int:
    """域分离标签：域字符串的 SHA-256，约简到电路字段。"""
    return hash_to_scalar(config.nullifier_domain.encode()) % config.field_modulus


class CommitmentScheme:
    """原生（电路外）承诺与作废哈希。"""

    def __init__(self, config: MixerConfig):
        self.config = config
        self.hasher = MiMCHasher(config.hash_params())
        self.tag = nullifier_domain_tag(config)

    def _check(self, note: Note):
        p = self.config.field_modulus
        to_field(note.nullifier, p)
        to_field(note.secret, p)

    def commitment(self, note: Note) -> int:
        self._check(note)
        return self.hasher.hash(note.nullifier, note.secret)

    def nullifier_hash(self, note: Note) -> int:
        self._check(note)
        if self.config.legacy_nullifier_hash:
            return self.hasher.hash(note.nullifier, note.secret)
        return self.hasher.hash(self.tag, note.nullifier)


class CommitmentGadget:
    """电路内的承诺与作废哈希，语义与 CommitmentScheme 相同。"""

    def __init__(self, cs: ConstraintSystem, config: MixerConfig):
        self.cs = cs
        self.config = config
        self.hasher = MiMCGadget(cs, config.hash_params())
        self.tag = nullifier_domain_tag(config)

    def commitment(self, nullifier: LinearCombination, secret: LinearCombination) -> LinearCombination:
        return self.hasher.hash(nullifier, secret)

    def nullifier_hash(self, nullifier: LinearCombination, secret: LinearCombination) -> LinearCombination:
        if self.config.legacy_nullifier_hash:
            return self.hasher.hash(nullifier, secret)
        return self.hasher.hash(self.cs.constant(self.tag), nullifier)
