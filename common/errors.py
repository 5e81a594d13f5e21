"""
混币器关系的异常分类

- ConfigurationError：配置/集成错误（路径长度不符、字段与曲线不匹配、生命周期误用、
  密钥与电路版本不符），在任何证明尝试之前暴露给集成方。
- FieldElementError：原生整数不是规范的字段元素，在见证组装之前被拒绝。
- UnsatisfiedWitnessError：证明者声称的知识不满足关系，证明生成直接失败。
- UnknownRootError / DoubleSpendError：记账层（电路外部）的拒绝。

注意：验证失败（证明未通过密码学检查）不是异常，而是返回 False。
"""


class MixerError(Exception):
    """所有混币器错误的基类。"""


class ConfigurationError(MixerError, ValueError):
    """配置错误：致命，不做任何重试。"""


class FieldElementError(MixerError, ValueError):
    """值不在 [0, p) 范围内或不是整数。"""


class UnsatisfiedWitnessError(MixerError):
    """见证不满足约束系统，不会产生任何证明对象。"""

    def __init__(self, message: str, constraint_index: int = -1, label: str = ""):
        super().__init__(message)
        self.constraint_index = constraint_index
        self.label = label


class MerkleTreeFullError(MixerError):
    """固定深度的默克尔树已无空位。"""


class UnknownRootError(MixerError):
    """提交的默克尔根既不是当前根也不在历史根中。"""


class DoubleSpendError(MixerError):
    """作废哈希已被标记为已花费。"""

    def __init__(self, nullifier_hash: int):
        super().__init__(f"作废哈希 {nullifier_hash:#x} 已被花费")
        self.nullifier_hash = nullifier_hash
