"""CSV 取り込み・書き出しモジュール."""

from __future__ import annotations

import csv
import io
from collections import OrderedDict

from kwsearch.config import KEYWORDS_COLUMN
from kwsearch.errors import InvalidUpload

EXPORT_HEADER = ["Keyword", "Position", "Link"]


def parse_keywords_csv(text: str) -> list[str]:
    """アップロード CSV から Keywords 列の値を取り出す.

    前後の空白は除去し、空の値は捨てる。

    Raises:
        InvalidUpload: 空ファイル・Keywords 列なし・有効なキーワードなし
    """
    # Excel 出力の BOM 付き UTF-8 を考慮
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows = list(reader)
    if not rows:
        raise InvalidUpload("CSV file is empty")
    if KEYWORDS_COLUMN not in (reader.fieldnames or []):
        raise InvalidUpload(f'CSV must have a "{KEYWORDS_COLUMN}" column')

    keywords = []
    for row in rows:
        value = (row.get(KEYWORDS_COLUMN) or "").strip()
        if value:
            keywords.append(value)

    if not keywords:
        raise InvalidUpload("No valid keywords found in CSV")
    return keywords


def group_results_by_keyword(rows: list[dict]) -> list[dict]:
    """search_results の行をキーワードごとにまとめる. 行の並び順は保持する."""
    groups: OrderedDict[str, list[dict]] = OrderedDict()
    for row in rows:
        groups.setdefault(row["query"], []).append({
            "position": row["position"],
            "link": row["link"],
        })
    return [{"keyword": query, "results": results} for query, results in groups.items()]


def export_results_csv(rows: list[dict]) -> str:
    """search_results の行を Keyword,Position,Link の CSV 文字列にする."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_HEADER)
    for row in rows:
        writer.writerow([row["query"], row["position"], row["link"]])
    return buf.getvalue()
