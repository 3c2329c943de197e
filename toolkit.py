"""
cookiefreq の共通部品（toolkit）

今は logger の構成だけ。stdout は結果（cookie の行 / JSON）専用にしたいので、
進捗や警告はすべて stderr に寄せる。
"""

from __future__ import annotations

import logging
import sys


def setup_logger(name: str, verbose: bool) -> logging.Logger:
    """
    stderr に出す logger を返す。

    - verbose なら INFO、そうでなければ WARNING 以上だけ
    - 呼ぶたびに handler を付け直すので、テストで何度呼んでも重複しない
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.propagate = False
    logger.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(handler)
    return logger
