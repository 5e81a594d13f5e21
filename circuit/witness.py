"""
见证组装

把证明者的秘密对、认证路径以及声称的公开值转换成约束系统的完整赋值。
- 路径长度与电路深度不符：ConfigurationError（换深度就是换电路版本）。
- 任何值不是规范字段元素：FieldElementError，发生在求解之前。
- 公开值按给定值写入，不做修正；与秘密不一致的见证在证明时被拒绝。
"""
from typing import Dict

from config import MixerConfig
from circuit.relation import path_input_names
from common.datastructures import MerklePath, Note, Witness
from common.errors import ConfigurationError, FieldElementError
from snark.r1cs import R1CS
from utils import log_msg, to_field


class WitnessAssembler:

    def __init__(self, r1cs: R1CS, config: MixerConfig):
        self.r1cs = r1cs
        self.config = config

    def inputs_for(self, note: Note, path: MerklePath, root: int, nullifier_hash: int) -> Dict[str, int]:
        depth = self.config.tree_depth
        if len(path.siblings) != depth or len(path.directions) != depth:
            raise ConfigurationError(
                f"认证路径长度 ({len(path.siblings)}, {len(path.directions)}) 与树深度 {depth} 不符")

        p = self.config.field_modulus
        for d in path.directions:
            if isinstance(d, bool) or d not in (0, 1):
                raise FieldElementError(f"方向位必须为 0 或 1，得到 {d!r}")

        inputs = {
            "root": to_field(root, p),
            "nullifier_hash": to_field(nullifier_hash, p),
            "nullifier": to_field(note.nullifier, p),
            "secret": to_field(note.secret, p),
        }
        sibling_names, direction_names = path_input_names(depth)
        for name, sibling in zip(sibling_names, path.siblings):
            inputs[name] = to_field(sibling, p)
        for name, direction in zip(direction_names, path.directions):
            inputs[name] = direction
        return inputs

    def assemble(self, note: Note, path: MerklePath, root: int, nullifier_hash: int) -> Witness:
        inputs = self.inputs_for(note, path, root, nullifier_hash)
        witness = self.r1cs.solve(inputs)
        log_msg("DEBUG", "WITNESS", None, f"见证组装完成：{len(witness.values)} 个变量")
        return witness
