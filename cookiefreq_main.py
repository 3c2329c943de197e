"""
cookiefreq のエントリーポイント（薄いラッパー）

import しただけで集計が走らないよう、実装本体（cookiefreq.py）と分けておく。
"""

from __future__ import annotations

import sys

if __name__ == "__main__":
    from cookiefreq import main

    raise SystemExit(main(sys.argv[1:]))
