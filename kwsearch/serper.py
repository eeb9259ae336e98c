"""Serper.dev 検索 API クライアントと検索結果の抽出モジュール.

1キーワードにつき1リクエスト。リトライは行わない（呼び出し側の責務）。
"""

from __future__ import annotations

import logging

import requests

from kwsearch.config import (
    MAX_ORGANIC_RESULTS,
    REQUEST_TIMEOUT,
    SEARCH_PARAMS,
    SERPER_ENDPOINT,
)
from kwsearch.errors import ProviderError, TransportError
from kwsearch.models import SearchResultRecord

logger = logging.getLogger(__name__)


def fetch_search_results(
    keyword: str, api_key: str, session: requests.Session | None = None
) -> dict:
    """Serper API でキーワードを検索する.

    Args:
        keyword: 検索キーワード
        api_key: Serper API キー
        session: 使い回す requests.Session（省略時は requests を直接使う）

    Returns:
        レスポンス JSON（dict）

    Raises:
        ProviderError: 2xx 以外のステータス
        TransportError: 接続失敗・タイムアウト・JSON でない本文
    """
    payload = {"q": keyword, **SEARCH_PARAMS}
    headers = {
        "X-API-KEY": api_key,
        "Content-Type": "application/json",
    }
    http = session or requests

    try:
        resp = http.post(
            SERPER_ENDPOINT, json=payload, headers=headers, timeout=REQUEST_TIMEOUT
        )
    except requests.RequestException as e:
        logger.error("Serper API 接続失敗: keyword=%s, error=%s", keyword, e)
        raise TransportError(keyword, e) from e

    if not resp.ok:
        logger.error(
            "Serper API エラー: keyword=%s, status=%s %s",
            keyword, resp.status_code, resp.reason,
        )
        raise ProviderError(keyword, resp.status_code, resp.reason or "")

    try:
        data = resp.json()
    except ValueError as e:
        logger.error("Serper API レスポンス JSON パースエラー: keyword=%s, error=%s", keyword, e)
        raise TransportError(keyword, e) from e

    if not isinstance(data, dict):
        logger.error("Serper API レスポンスがオブジェクトではない: keyword=%s, type=%s",
                     keyword, type(data).__name__)
        raise TransportError(keyword, ValueError("unexpected response body"))

    logger.info(
        "Serper API 応答: keyword=%s, organic=%d 件, credits=%s",
        keyword, len(data.get("organic") or []), data.get("credits"),
    )
    return data


def parse_organic_results(
    response: dict, keyword: str, user_id: str, import_id: str
) -> list[SearchResultRecord]:
    """レスポンスの organic から先頭 10 件を保存用レコードに変換する.

    並び替えはしない。position は API の値をそのまま使う。
    organic がない場合は空リスト。
    """
    organic = response.get("organic") or []
    return [
        SearchResultRecord(
            query=keyword,
            position=entry.get("position"),
            link=entry.get("link", ""),
            user_id=user_id,
            import_id=import_id,
        )
        for entry in organic[:MAX_ORGANIC_RESULTS]
    ]
