"""キーワード一括検索 — インポート単位のバッチ処理.

処理フロー:
  1. 前提条件チェック（ユーザー・キーワード・API キー）
  2. 各キーワードを順番に Serper で検索
  3. organic 上位 10 件を抽出して search_results に保存
  4. キーワードごとに固定間隔で待機
  5. 成功・失敗を集計してサマリを返す

キーワード単位の失敗は記録して続行する。バッチが途中で止まることはない。
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from kwsearch import db
from kwsearch.errors import (
    ConfigurationError,
    KeywordSearchError,
    NotFound,
    Unauthenticated,
)
from kwsearch.models import (
    BatchSummary,
    Keyword,
    KeywordFailure,
    KeywordOutcome,
    ProcessedSearchResult,
    SearchResultRecord,
)
from kwsearch.rate_limit import IntervalRateLimiter
from kwsearch.serper import fetch_search_results, parse_organic_results

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, str], dict]
Persister = Callable[[list[SearchResultRecord]], int]


class KeywordSearchBatch:
    """インポート1件分のキーワードを検索・保存する.

    API キーは生成時に受け取る。検索・保存関数と待機処理は差し替え可能。
    """

    def __init__(
        self,
        api_key: str | None,
        rate_limiter=None,
        fetch: Fetcher = fetch_search_results,
        persist: Persister = db.insert_search_results,
    ):
        self.api_key = api_key
        self.rate_limiter = rate_limiter or IntervalRateLimiter()
        self._fetch = fetch
        self._persist = persist

    def search_import(self, user_id: str | None, import_id: str) -> BatchSummary:
        """DB からキーワードを取得してバッチを実行する."""
        if not user_id:
            raise Unauthenticated()
        keywords = db.get_keywords_for_import(import_id, user_id)
        return self.run(user_id, import_id, keywords)

    def run(self, user_id: str | None, import_id: str, keywords: list[Keyword]) -> BatchSummary:
        """キーワードを順番に処理し、サマリを返す.

        Raises:
            Unauthenticated: user_id がない
            NotFound: キーワードが 0 件
            ConfigurationError: API キーがない
        """
        if not user_id:
            raise Unauthenticated()
        if not keywords:
            raise NotFound("No keywords found for this import")
        if not self.api_key:
            logger.error("SERPER_API_KEY が設定されていません")
            raise ConfigurationError("API configuration error")

        logger.info("=== キーワード検索 開始: import_id=%s, %d 件 ===", import_id, len(keywords))
        start_time = time.time()

        summary = BatchSummary(total_keywords=len(keywords))
        for i, keyword in enumerate(keywords, start=1):
            logger.info("[%d/%d] 検索中: keyword=%s", i, len(keywords), keyword.keyword)
            outcome = self._process_keyword(keyword, user_id, import_id)
            if outcome.ok:
                summary.results.append(outcome.result)
            else:
                summary.failures.append(outcome.failure)
            self.rate_limiter.wait()

        elapsed = time.time() - start_time
        logger.info("=== キーワード検索 完了 ===")
        logger.info(
            "成功: %d 件, 失敗: %d 件, 取得: %d 件, 保存: %d 件, 所要時間: %.1f 秒",
            summary.keywords_processed, summary.keywords_failed,
            summary.total_search_results, summary.total_results_saved, elapsed,
        )
        return summary

    def _process_keyword(self, keyword: Keyword, user_id: str, import_id: str) -> KeywordOutcome:
        """1キーワードを検索・保存する. 失敗は KeywordOutcome.failure に入れて返す."""
        try:
            search_data = self._fetch(keyword.keyword, self.api_key)
            records = parse_organic_results(search_data, keyword.keyword, user_id, import_id)
            logger.info("抽出: %d 件（上限 10 件）", len(records))
            saved = self._persist(records)
        except KeywordSearchError as e:
            logger.warning("スキップ: keyword=%s, error=%s", keyword.keyword, e)
            return KeywordOutcome(failure=KeywordFailure(keyword=keyword.keyword, error=str(e)))

        return KeywordOutcome(result=ProcessedSearchResult(
            keyword=keyword.keyword,
            keyword_id=keyword.id,
            total_results=len(search_data.get("organic") or []),
            saved_results=saved,
            search_data=search_data,
        ))
