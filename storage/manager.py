import threading
from collections import deque
from typing import Deque, List, Tuple

from config import MixerConfig
from common.datastructures import MerklePath
from merkle import MerkleTree
from utils import MiMCHasher, log_msg, short_hex


class TreeManager:
    """
    管理混币器的承诺树与历史根。
    所有读写都在 state_lock 下进行，(根, 路径) 快照总是来自同一棵树的同一状态。
    """
    def __init__(self, config: MixerConfig, node_id: str = "pool"):
        self.config = config
        self.node_id = node_id
        self.hasher = MiMCHasher(config.hash_params())
        self.tree = MerkleTree(config.tree_depth, self.hasher)
        # 最近的若干个根；验证者接受其中任一个，取款期间的新存款不会使证明失效
        self.root_history: Deque[int] = deque([self.tree.root()], maxlen=config.root_history_size)
        self.state_lock = threading.Lock()

    def __getstate__(self):
        state = self.__dict__.copy()
        if 'state_lock' in state:
            del state['state_lock']
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self.state_lock = threading.Lock()

    def insert(self, commitment: int) -> int:
        """追加叶子承诺，返回其索引；树满时抛出 MerkleTreeFullError。"""
        with self.state_lock:
            index = self.tree.insert(commitment)
            root = self.tree.root()
            self.root_history.append(root)
        log_msg("INFO", "TREE", self.node_id, f"插入承诺 #{index}，新根 {short_hex(root)}")
        return index

    def current_root(self) -> int:
        with self.state_lock:
            return self.tree.root()

    def is_known_root(self, root: int) -> bool:
        with self.state_lock:
            return root in self.root_history

    def known_roots(self) -> List[int]:
        with self.state_lock:
            return list(self.root_history)

    def num_leaves(self) -> int:
        with self.state_lock:
            return len(self.tree)

    def snapshot(self, index: int) -> Tuple[int, MerklePath]:
        """在同一把锁下读取当前根与指定叶子的认证路径。"""
        with self.state_lock:
            return self.tree.root(), self.tree.path_for(index)

    def leaf(self, index: int) -> int:
        with self.state_lock:
            return self.tree.levels[0][index]
