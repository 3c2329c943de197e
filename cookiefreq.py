"""
cookiefreq: 指定日にいちばん多く出現した cookie を求めるツール

やること：
- `cookie,timestamp` 形式のログ（1行目はヘッダ）を読み、LogEntry の列にする
- 指定日（YYYY-MM-DD）に一致する行だけ cookie ごとに数える
- 最大件数の cookie を「同数なら全部」返す

方針：
- 壊れた行は読み飛ばさない。1行でも壊れていたら例外で全体を失敗させる
- パース/集計は例外を投げるだけの純粋関数。終了コードに変えるのは main の責務
- stdout は結果専用、進捗やエラーログは stderr（toolkit.setup_logger）
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Iterator

import toolkit

LOGGER_NAME = "cookiefreq"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
DATE_FORMAT = "%Y-%m-%d"

# strptime は 1桁の月や `+09:00` / `Z` も通してしまうので、先に桁数まで固定で検査する
_TIMESTAMP_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}[+-][0-9]{4}")
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


# -------------------------
# 例外
# -------------------------


class CookieLogError(Exception):
    """cookiefreq が投げる例外の基底クラス。"""


class InputUnavailableError(CookieLogError):
    """ログファイルが開けない / 読めない。"""


class MalformedRecordError(CookieLogError):
    """区切りの `,` が無い行。"""


class MalformedTimestampError(CookieLogError):
    """timestamp が `YYYY-MM-DDThh:mm:ss±hhmm` に一致しない。"""


class MalformedFilterDateError(CookieLogError):
    """指定日（-d）が `YYYY-MM-DD` として読めない。"""


# -------------------------
# データモデル（DTO）
# -------------------------


@dataclass(frozen=True)
class LogEntry:
    """
    ログ1行ぶんの観測（cookie + timestamp）。

    - cookie: 完全一致で比較するキー（大文字小文字も区別、正規化しない）
    - timestamp: オフセット付きの datetime（秒精度）
    """

    cookie: str
    timestamp: datetime


@dataclass
class Report:
    """
    集計結果DTO。

    - total_entries: パースできた全行数
    - matched_entries: 指定日に一致した行数
    - max_count: 最大出現回数（一致0件なら 0）
    - cookies: 最大出現回数に並んだ cookie 全部
    """

    filter_date: date
    total_entries: int
    matched_entries: int
    max_count: int
    cookies: set[str]


# -------------------------
# パース（コアロジック）
# -------------------------


def _where(lineno: int | None) -> str:
    return f"line {lineno}: " if lineno is not None else ""


def parse_timestamp(text: str, lineno: int | None = None) -> datetime:
    """`2018-12-09T14:19:00+0000` 形式だけを受け付けて datetime にする。"""
    if not _TIMESTAMP_RE.fullmatch(text):
        raise MalformedTimestampError(f"{_where(lineno)}invalid timestamp: {text!r}")
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError as exc:
        # 桁数は合っているが月=13 などの範囲外
        raise MalformedTimestampError(f"{_where(lineno)}invalid timestamp: {text!r} ({exc})") from exc


def parse_line(line: str, lineno: int | None = None) -> LogEntry | None:
    """
    1行を LogEntry にする。

    - 空行（長さ0）だけ None。空白だけの行は `,` が無いので壊れた行として失敗する
    - 最初の `,` だけで分ける。cookie 側に `,` が入っていると timestamp が壊れて失敗する
    - 行末の LF / CRLF 以外は削らない（前後に空白があれば timestamp の形式違反になる）
    """
    s = line[:-1] if line.endswith("\n") else line
    if s.endswith("\r"):
        s = s[:-1]
    if s == "":
        return None

    if "," not in s:
        raise MalformedRecordError(f"{_where(lineno)}missing ',' delimiter: {s!r}")
    cookie, raw_ts = s.split(",", 1)
    if cookie == "":
        raise MalformedRecordError(f"{_where(lineno)}empty cookie: {s!r}")

    return LogEntry(cookie=cookie, timestamp=parse_timestamp(raw_ts, lineno))


def iter_entries(lines: Iterable[str], start: int = 2) -> Iterator[LogEntry]:
    """
    ヘッダを除いた行の列から LogEntry を順に yield する。

    start は最初の行の行番号（エラーメッセージ用）。ヘッダの次なので既定は 2。
    """
    for lineno, line in enumerate(lines, start=start):
        entry = parse_line(line, lineno)
        if entry is None:
            continue
        yield entry


def parse_logs(source_text: str) -> list[LogEntry]:
    """
    ログ全文を LogEntry のリストにする（元の行順を保つ）。

    - 1行目はヘッダとして中身を見ずに捨てる
    - 空文字 / ヘッダだけ なら空リスト
    - 壊れた行が1つでもあれば例外（途中までの結果は返さない）

    行の区切りは LF だけ。splitlines() は FS (0x1c) や LINE SEPARATOR でも行を切ってしまい、
    cookie の中身を壊すので使わない。
    """
    lines = source_text.split("\n")
    return list(iter_entries(lines[1:]))


def read_log_text(path: Path | str) -> str:
    """ログファイル（`-` なら stdin）の中身を UTF-8 で読む。"""
    if str(path) == "-":
        return sys.stdin.read()
    p = Path(path).expanduser()
    try:
        return p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputUnavailableError(f"Unable to open logfile {p} ({exc})") from exc


def load_logs(path: Path | str) -> list[LogEntry]:
    """ファイルを読んで parse_logs する。"""
    return parse_logs(read_log_text(path))


def parse_filter_date(text: str) -> date:
    """指定日 `YYYY-MM-DD` を date にする。"""
    s = text.strip()
    if not _DATE_RE.fullmatch(s):
        raise MalformedFilterDateError(f"invalid date (expected YYYY-MM-DD): {text!r}")
    try:
        return datetime.strptime(s, DATE_FORMAT).date()
    except ValueError as exc:
        raise MalformedFilterDateError(f"invalid date: {text!r} ({exc})") from exc


# -------------------------
# 集計（コアロジック）
# -------------------------


def count_by_cookie(entries: Iterable[LogEntry], filter_date: date) -> Counter[str]:
    """
    指定日の行だけ cookie ごとに数える。

    日付の比較は timestamp 自身のオフセットでの年月日。タイムゾーン変換はしない。
    """
    tally: Counter[str] = Counter()
    for e in entries:
        ts = e.timestamp
        if (ts.year, ts.month, ts.day) == (filter_date.year, filter_date.month, filter_date.day):
            tally[e.cookie] += 1
    return tally


def _select_max(tally: Counter[str]) -> tuple[int, set[str]]:
    if not tally:
        return 0, set()
    max_count = max(tally.values())
    return max_count, {cookie for cookie, count in tally.items() if count == max_count}


def max_frequency_cookies(entries: Iterable[LogEntry], filter_date: date) -> set[str]:
    """
    指定日に最も多く出現した cookie の集合を返す。

    - 同数1位は全部含める（tie を崩さない）
    - 一致する行が無ければ空集合（エラーではない）
    - 集合なので順序は保証しない
    """
    _, cookies = _select_max(count_by_cookie(entries, filter_date))
    return cookies


def analyze(entries: list[LogEntry], filter_date: date) -> Report:
    """指定日の集計結果（件数と最大 cookie）を Report にまとめる。"""
    tally = count_by_cookie(entries, filter_date)
    max_count, cookies = _select_max(tally)
    return Report(
        filter_date=filter_date,
        total_entries=len(entries),
        matched_entries=sum(tally.values()),
        max_count=max_count,
        cookies=cookies,
    )


# -------------------------
# CLIパース（I/O境界：入力）
# -------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    CLI引数を定義して解析結果を返す。

    受け取るのは「ログのパス」と「-d 日付」の2つだけ。どちらも必須で、
    足りなければ argparse が usage を出して終了コード 2 で止める。
    """
    parser = argparse.ArgumentParser(description="A tool for analyzing cookie logs for usage frequency.")

    parser.add_argument(
        "path",
        type=Path,
        help="The log file to analyze（'-' なら stdin）",
    )
    parser.add_argument(
        "-d",
        "--date",
        type=str,
        required=True,
        help="The date (UTC format, YYYY-MM-DD) to search for frequencies",
    )

    parser.add_argument("--json", action="store_true", help="結果をJSON形式で出力する")
    parser.add_argument("--verbose", action="store_true", help="処理中の詳細ログを stderr に表示する")

    return parser.parse_args(argv)


# -------------------------
# 出力（I/O境界：stdout）
# -------------------------


def build_json_payload(path: str, report: Report) -> dict[str, Any]:
    # cookies は集合なので、出力では名前順に並べて安定させる
    return {
        "path": path,
        "date": report.filter_date.isoformat(),
        "total_entries": report.total_entries,
        "matched_entries": report.matched_entries,
        "max_count": report.max_count,
        "cookies": sorted(report.cookies),
    }


# -------------------------
# 実行フロー組み立て
# -------------------------


def main(argv: list[str] | None = None) -> int:
    """
    実行入口（テストからも呼べる形）。

    引数解析 → 日付の検証 → 読み込み/パース → 集計 → 出力 の順に並べる。
    - 日付が読めなければ 2
    - ログが開けない / 壊れた行があれば 1（結果は1行も出さない）
    """
    args = parse_args(argv)
    logger = toolkit.setup_logger(LOGGER_NAME, args.verbose)

    try:
        filter_date = parse_filter_date(args.date)
    except MalformedFilterDateError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    display_path = "-" if str(args.path) == "-" else str(args.path.expanduser())
    logger.info("read start: path=%s date=%s", display_path, filter_date.isoformat())

    try:
        entries = load_logs(args.path)
    except CookieLogError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    logger.info("read done: entries=%d", len(entries))

    report = analyze(entries, filter_date)
    logger.info("matched=%d max_count=%d cookies=%d", report.matched_entries, report.max_count, len(report.cookies))

    if args.json:
        print(json.dumps(build_json_payload(display_path, report), ensure_ascii=False, indent=2))
        return 0

    for cookie in sorted(report.cookies):
        print(cookie)
    return 0
