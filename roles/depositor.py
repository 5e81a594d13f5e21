from typing import Optional, Tuple

from circuit.commitment import CommitmentScheme
from common.datastructures import Note
from storage.manager import TreeManager
from utils import log_msg, short_hex


class Depositor:
    """存款者：生成秘密对，公开承诺并把它插入承诺树。"""

    def __init__(self, depositor_id: str, tree: TreeManager):
        self.depositor_id = depositor_id
        self.tree = tree
        self.scheme = CommitmentScheme(tree.config)

    def create_note(self) -> Note:
        """生成一个新的随机秘密对；秘密对必须由存款者私下保存。"""
        return Note.random(self.tree.config.field_modulus)

    def deposit(self, note: Optional[Note] = None) -> Tuple[Note, int]:
        """
        存入一笔资产。

        :param note: 指定的秘密对；为 None 时随机生成。
        :return: (秘密对, 叶子索引)
        """
        note = note or self.create_note()
        commitment = self.scheme.commitment(note)
        index = self.tree.insert(commitment)
        log_msg("INFO", "DEPOSITOR", self.depositor_id, f"存款承诺 {short_hex(commitment)} 位于叶子 #{index}")
        return note, index
