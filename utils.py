"""
通用工具函数模块

- SNARK 友好哈希：MiMC 分组密码 + Miyaguchi-Preneel 压缩（与 gnark MIMC_BN254 相同的结构），
  字段模数、指数、轮数与常量种子均由 MiMCParams 注入，电路内外共用同一组参数。
- 字段元素规范化：to_field 只接受 [0, p) 内的整数，越界值在见证组装之前被拒绝。
- 日志：init_logging / log_msg，所有模块统一通过 log_msg 记录结构化日志。
"""
import hashlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from math import gcd
from typing import List, Optional, Sequence, Tuple

from common.errors import ConfigurationError, FieldElementError


# ---------------------------- 字段元素 ----------------------------

def to_field(value, modulus: int) -> int:
    """
    校验并返回规范的字段元素。
    不做取模：越界或负数的原生整数必须被拒绝，而不是被悄悄约简。
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldElementError(f"字段元素必须是整数，得到 {type(value).__name__}")
    if value < 0 or value >= modulus:
        raise FieldElementError(f"值 {value} 不在字段范围 [0, p) 内")
    return value


# ---------------------------- SNARK 友好哈希（MiMC over BN254） ----------------------------

@dataclass(frozen=True)
class MiMCParams:
    """MiMC 参数：字段模数、S 盒指数、轮数与常量种子。"""
    modulus: int
    exponent: int = 5
    rounds: int = 110
    seed: str = "seed"

    def __post_init__(self):
        if self.rounds < 1:
            raise ConfigurationError("MiMC 轮数至少为 1")
        if self.exponent < 3:
            raise ConfigurationError("MiMC 指数至少为 3")
        # x -> x^e 必须是置换
        if gcd(self.exponent, self.modulus - 1) != 1:
            raise ConfigurationError(f"指数 {self.exponent} 与 p-1 不互素，x^e 不是置换")

    @property
    def constants(self) -> Tuple[int, ...]:
        return mimc_constants(self.rounds, self.seed, self.modulus)


@lru_cache(maxsize=None)
def mimc_constants(rounds: int, seed: str, modulus: int) -> Tuple[int, ...]:
    """
    生成 MiMC 的轮常量，确定性（从固定种子派生），对字段取模。
    """
    consts: List[int] = []
    state = seed.encode()
    for i in range(rounds):
        # 简单的确定性常量派生：迭代哈希再取模
        state = hashlib.sha256(state + i.to_bytes(4, "big")).digest()
        consts.append(int.from_bytes(state, "big") % modulus)
    return tuple(consts)


def mimc_encrypt(params: MiMCParams, message: int, key: int) -> int:
    """
    MiMC 加密：每轮 m <- (m + k + c_i)^e (mod p)，最后 m <- m + k (mod p)。
    """
    p = params.modulus
    m = message % p
    for c in params.constants:
        m = pow((m + key + c) % p, params.exponent, p)
    return (m + key) % p


def mimc_hash(params: MiMCParams, *values: int) -> int:
    """
    Miyaguchi-Preneel 压缩：h <- E_h(x) + h + x，初始 h = 0。
    输入逐个按字段元素吸收，输出一个字段元素。
    """
    p = params.modulus
    h = 0
    for v in values:
        x = to_field(v, p)
        h = (mimc_encrypt(params, x, h) + h + x) % p
    return h


class MiMCHasher:
    """原生（电路外）哈希，供承诺、默克尔树与见证准备使用。"""

    def __init__(self, params: MiMCParams):
        self.params = params

    @property
    def modulus(self) -> int:
        return self.params.modulus

    def hash(self, *values: int) -> int:
        return mimc_hash(self.params, *values)

    def hash2(self, left: int, right: int) -> int:
        """默克尔父节点哈希（二叉）。"""
        return mimc_hash(self.params, left, right)

    def hash_many(self, values: Sequence[int]) -> int:
        return mimc_hash(self.params, *values)


# ---------------------------- 日志记录辅助函数 ----------------------------

_LOG_INITIALIZED = False
_LOGGER = logging.getLogger("AssetMixer")


def init_logging(log_file: Optional[str] = "mixer.log", level: str = "DEBUG", console: bool = True,
                 max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
    """
    初始化全局日志记录器。

    :param log_file: 日志文件名；为 None 时不写文件。
    :param level: 日志级别字符串 (例如, "DEBUG", "INFO", "WARN")。
    :param console: 如果为True，日志也会输出到控制台。
    :param max_bytes: 每个日志文件的最大大小（字节）。
    :param backup_count: 保留的旧日志文件数量。
    """
    global _LOG_INITIALIZED
    if _LOG_INITIALIZED:
        return

    log_level = _to_logging_level(level)

    _LOGGER.setLevel(log_level)
    _LOGGER.propagate = False  # 防止日志向上传播到根记录器，避免重复输出

    fmt = logging.Formatter(fmt="%(asctime)s %(levelname)-7s %(message)s", datefmt="%H:%M:%S")

    if log_file:
        # 文件处理器，支持日志文件滚动
        fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        fh.setLevel(log_level)
        fh.setFormatter(fmt)
        _LOGGER.addHandler(fh)

    if console:
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(fmt)
        _LOGGER.addHandler(ch)

    if not _LOGGER.handlers:
        _LOGGER.addHandler(logging.NullHandler())

    _LOG_INITIALIZED = True


def _to_logging_level(level: str) -> int:
    """将字符串形式的日志级别转换为logging库的常量。"""
    level = (level or "INFO").upper()
    return {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }.get(level, logging.INFO)


def log_msg(level, actor_type, actor_id, msg: str):
    """
    记录一条结构化的日志消息。

    :param level: 日志级别 (例如, "INFO", "DEBUG")。
    :param actor_type: 产生日志的模块或角色类型 (例如, "PROVER", "SETUP")。
    :param actor_id: 参与者的唯一ID，对于系统级日志可为None。
    :param msg: 日志消息内容。
    """
    if not _LOG_INITIALIZED:
        # 如果日志系统未初始化，则使用默认配置进行初始化
        init_logging()

    who = f"{actor_type}({actor_id})" if actor_id else actor_type
    _LOGGER.log(_to_logging_level(level), f"{who}: {msg}")


def short_hex(value: int, width: int = 16) -> str:
    """日志中使用的截断十六进制表示。"""
    return f"{value:064x}"[:width]
