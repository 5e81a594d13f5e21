import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from common.errors import DoubleSpendError
from utils import log_msg, short_hex


@dataclass(frozen=True)
class NullifierRecord:
    """一次成功取款的记录。"""
    nullifier_hash: int
    root: int
    timestamp: float


class NullifierRegistry:
    """
    已花费作废哈希集合。
    mark_spent 在锁内完成“检查并标记”，两个并发的取款请求最多只有一个成功。
    """
    def __init__(self, node_id: str = "registry"):
        self.node_id = node_id
        self.spent: Dict[int, NullifierRecord] = {}
        self.state_lock = threading.Lock()

    def is_spent(self, nullifier_hash: int) -> bool:
        with self.state_lock:
            return nullifier_hash in self.spent

    def mark_spent(self, nullifier_hash: int, root: int = 0) -> NullifierRecord:
        with self.state_lock:
            if nullifier_hash in self.spent:
                log_msg("WARN", "NULLIFIER", self.node_id, f"重复花费：{short_hex(nullifier_hash)}")
                raise DoubleSpendError(nullifier_hash)
            record = NullifierRecord(nullifier_hash=nullifier_hash, root=root, timestamp=time.time())
            self.spent[nullifier_hash] = record
        log_msg("DEBUG", "NULLIFIER", self.node_id, f"标记已花费：{short_hex(nullifier_hash)}")
        return record

    def record_of(self, nullifier_hash: int) -> Optional[NullifierRecord]:
        with self.state_lock:
            return self.spent.get(nullifier_hash)

    def records(self) -> List[NullifierRecord]:
        with self.state_lock:
            return list(self.spent.values())

    def __len__(self) -> int:
        with self.state_lock:
            return len(self.spent)
