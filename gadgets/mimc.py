"""
电路内 MiMC 哈希小工具

与 utils.mimc_hash 逐位一致：同一组 MiMCParams（模数、指数、轮数、常量），
同样的 Miyaguchi-Preneel 压缩 h <- E_h(x) + h + x。
每轮只有 S 盒产生约束（指数 5 时 3 条），加常量与加密钥都是线性的。
"""
from typing import Sequence

from common.errors import ConfigurationError
from snark.r1cs import ConstraintSystem, LinearCombination
from utils import MiMCParams


class MiMCGadget:
    """在给定约束系统上计算 MiMC 哈希。"""

    def __init__(self, cs: ConstraintSystem, params: MiMCParams):
        if cs.modulus != params.modulus:
            raise ConfigurationError("MiMC 参数的字段与约束系统不一致")
        self.cs = cs
        self.params = params

    def encrypt(self, message: LinearCombination, key: LinearCombination) -> LinearCombination:
        m = message
        for c in self.params.constants:
            m = self.cs.pow(m + key + c, self.params.exponent, "mimc_round")
        return m + key

    def hash(self, *values) -> LinearCombination:
        h = self.cs.constant(0)
        for v in values:
            x = self.cs.lc(v)
            h = self.encrypt(x, h) + h + x
        return h

    def hash_many(self, values: Sequence) -> LinearCombination:
        return self.hash(*values)
