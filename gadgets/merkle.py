"""
默克尔成员关系小工具（电路内）

给定叶子、定长认证路径（兄弟节点与方向位）以及公开根，断言沿路径逐层哈希能重现该根。

Circuit Logic:
1. cur = leaf
2. 对每一层 h（自底向上）：
   a) 约束 d_h ∈ {0, 1}，防止恶意见证用非法选择子混合两种顺序
   b) left  = cur + d_h·(sib_h - cur)   （1 条乘法约束）
      right = cur + sib_h - left        （线性）
   c) cur = H(left, right)
3. 约束 cur == root

路径长度是电路参数：长度不符在定义电路时即报配置错误，而不是在证明时失败。
本小工具不决定是否信任根；根是否作为公开输入由调用方绑定。
"""
from typing import Sequence

from common.errors import ConfigurationError
from gadgets.mimc import MiMCGadget
from snark.r1cs import ConstraintSystem, LinearCombination


class MerkleProofGadget:

    def __init__(self, cs: ConstraintSystem, hasher: MiMCGadget, depth: int):
        self.cs = cs
        self.hasher = hasher
        self.depth = depth

    def compute_root(self, leaf: LinearCombination, siblings: Sequence[LinearCombination],
                     directions: Sequence[LinearCombination]) -> LinearCombination:
        if len(siblings) != len(directions):
            raise ConfigurationError(f"兄弟节点 {len(siblings)} 个，方向位 {len(directions)} 个，长度不符")
        if len(siblings) != self.depth:
            raise ConfigurationError(f"认证路径长度 {len(siblings)} 与电路深度 {self.depth} 不符")

        cur = leaf
        for h, (sibling, direction) in enumerate(zip(siblings, directions)):
            self.cs.assert_boolean(direction, f"merkle_direction_{h}")
            left = self.cs.select(direction, sibling, cur, f"merkle_select_{h}")
            right = cur + sibling - left
            cur = self.hasher.hash(left, right)
        return cur

    def verify(self, leaf: LinearCombination, siblings: Sequence[LinearCombination],
               directions: Sequence[LinearCombination], root: LinearCombination) -> LinearCombination:
        """断言路径重算出的根等于 root，返回电路内计算得到的根。"""
        computed = self.compute_root(leaf, siblings, directions)
        computed = self.cs.name(computed, "computed_root")
        self.cs.assert_equal(computed, root, "merkle_root")
        return computed
