"""
业务ID与单号生成
"""
import secrets
import string
import time

from paobai.core.timeutil import CHINA_TZ, utcnow

_ALPHABET = string.ascii_lowercase + string.digits
_UPPER_ALPHABET = string.ascii_uppercase + string.digits


def _random(length: int, alphabet: str = _ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_id(prefix: str = "") -> str:
    """前缀 + 毫秒时间戳 + 随机串，如 SS1718000000000k3j9x2a1b"""
    return f"{prefix}{int(time.time() * 1000)}{_random(9)}"


def generate_order_no() -> str:
    """订单号：PO + 本地日期时间 + 6位随机大写字母数字"""
    now = utcnow().astimezone(CHINA_TZ)
    return f"PO{now.strftime('%Y%m%d%H%M%S')}{_random(6, _UPPER_ALPHABET)}"


def generate_transaction_id() -> str:
    return f"TX{int(time.time() * 1000)}{_random(6, _UPPER_ALPHABET)}"
