"""
定深默克尔树实现模块（电路外）

该模块提供了一个仅追加的定深二叉默克尔树，用于：
- 从叶子承诺列表构建树并得到默克尔根。
- 为叶子生成认证路径（兄弟节点值 + 方向位）。
- 按路径逐层重算根并与给定根比较。

注意：
- 叶子与内部节点都是字段元素，内部节点为 H(left, right)。
- 深度是电路参数，未使用的槽位由零子树填充：zero[0] = 0，zero[i+1] = H(zero[i], zero[i])。
- 方向位 0 表示当前节点为左孩子（兄弟在右），1 表示当前节点为右孩子（兄弟在左）。
"""
from typing import List, Sequence, Tuple

from common.datastructures import MerklePath
from common.errors import ConfigurationError, MerkleTreeFullError
from utils import MiMCHasher, to_field


class MerkleTree:
    """一个仅追加、固定深度的默克尔树实现。"""

    def __init__(self, depth: int, hasher: MiMCHasher, leaves: Sequence[int] = ()):
        """
        初始化并构建默克尔树。

        :param depth: 树深度（认证路径长度）。
        :param hasher: 原生 MiMC 哈希。
        :param leaves: 初始叶子承诺列表。
        """
        if depth < 1:
            raise ConfigurationError("树深度至少为 1")
        self.depth = depth
        self.hasher = hasher
        self.zeros = self._zero_hashes()
        # levels[0] 为叶子层，levels[depth] 为根所在层；每层只保存已填充的前缀
        self.levels: List[List[int]] = [[] for _ in range(depth + 1)]
        for leaf in leaves:
            self.insert(leaf)

    def _zero_hashes(self) -> List[int]:
        zeros = [0]
        for _ in range(self.depth):
            zeros.append(self.hasher.hash2(zeros[-1], zeros[-1]))
        return zeros

    @classmethod
    def build(cls, leaves: Sequence[int], depth: int, hasher: MiMCHasher) -> Tuple[int, List[MerklePath]]:
        """从叶子构建树，返回 (根, 每个叶子的认证路径)。"""
        tree = cls(depth, hasher, leaves)
        return tree.root(), [tree.path_for(i) for i in range(len(tree))]

    def __len__(self) -> int:
        return len(self.levels[0])

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    @property
    def leaves(self) -> List[int]:
        return self.levels[0][:]

    def _node(self, level: int, idx: int) -> int:
        layer = self.levels[level]
        return layer[idx] if idx < len(layer) else self.zeros[level]

    def insert(self, leaf: int) -> int:
        """
        追加一个叶子并沿路径更新祖先节点，返回叶子索引。
        """
        leaf = to_field(leaf, self.hasher.modulus)
        index = len(self)
        if index >= self.capacity:
            raise MerkleTreeFullError(f"深度为 {self.depth} 的树已满（{self.capacity} 个叶子）")

        self.levels[0].append(leaf)
        idx = index
        for level in range(self.depth):
            parent_idx = idx // 2
            left = self._node(level, parent_idx * 2)
            right = self._node(level, parent_idx * 2 + 1)
            parent = self.hasher.hash2(left, right)
            upper = self.levels[level + 1]
            if parent_idx < len(upper):
                upper[parent_idx] = parent
            else:
                upper.append(parent)
            idx = parent_idx
        return index

    def root(self) -> int:
        """返回默克尔根；空树的根为全零子树的根。"""
        return self._node(self.depth, 0)

    def path_for(self, index: int) -> MerklePath:
        """
        为指定索引的叶子生成认证路径。

        :param index: 叶子节点的索引。
        :return: MerklePath，siblings[h] 为第 h 层的兄弟节点，directions[h] 为该层方向位。
        """
        if index < 0 or index >= len(self):
            raise IndexError(f"叶子索引 {index} 越界")

        siblings: List[int] = []
        directions: List[int] = []
        idx = index
        for level in range(self.depth):
            siblings.append(self._node(level, idx ^ 1))
            directions.append(idx & 1)
            idx //= 2
        return MerklePath(siblings=siblings, directions=directions)

    @staticmethod
    def compute_root(leaf: int, path: MerklePath, hasher: MiMCHasher) -> int:
        """从叶子开始，沿着认证路径向上逐层计算哈希。"""
        computed = leaf
        for sibling, direction in zip(path.siblings, path.directions):
            if direction == 0:
                # 当前节点是左节点
                computed = hasher.hash2(computed, sibling)
            elif direction == 1:
                # 当前节点是右节点
                computed = hasher.hash2(sibling, computed)
            else:
                raise ValueError(f"方向位必须为 0 或 1，得到 {direction}")
        return computed

    @staticmethod
    def verify(leaf: int, path: MerklePath, root: int, hasher: MiMCHasher) -> bool:
        """
        验证一个叶子是否属于给定的默克尔根。

        :return: 如果路径重算出的根与给定根一致，返回True，否则返回False。
        """
        if len(path.siblings) != len(path.directions):
            return False
        if any(d not in (0, 1) for d in path.directions):
            return False
        return MerkleTree.compute_root(leaf, path, hasher) == root
