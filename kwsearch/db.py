"""Supabase データベース操作モジュール.

テーブル: imports / keywords / search_results（スキーマは SUPABASE_SCHEMA）。
サーバー側はシークレットキーで接続するため、全クエリで user_id を明示的に絞り込む。
"""

from __future__ import annotations

import logging

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError, Client, create_client

from kwsearch.config import (
    KEYWORD_INSERT_CHUNK_SIZE,
    SUPABASE_SCHEMA,
    SUPABASE_SECRET_KEY,
    SUPABASE_URL,
)
from kwsearch.errors import ConfigurationError, PersistenceError, StoreError
from kwsearch.models import Import, Keyword, SearchResultRecord

logger = logging.getLogger(__name__)

# 接続失敗・タイムアウトは httpx の例外として上がる
_STORE_ERRORS = (APIError, httpx.HTTPError)

_client: Client | None = None


def _get_client() -> Client:
    """Supabase クライアントを初回利用時に生成する."""
    global _client
    if _client is None:
        if not SUPABASE_URL or not SUPABASE_SECRET_KEY:
            logger.error("SUPABASE_URL / SUPABASE_SECRET_KEY が未設定です")
            raise ConfigurationError("Database configuration error")
        _client = create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)
    return _client


def _error_message(e: Exception) -> str:
    """APIError は message、httpx の例外は str() を使う."""
    return getattr(e, "message", None) or str(e)


def _table(name: str):
    """SUPABASE_SCHEMA のテーブルを参照する."""
    return _get_client().schema(SUPABASE_SCHEMA).table(name)


def get_user_id(access_token: str | None) -> str | None:
    """アクセストークンを Supabase Auth で検証し、ユーザー ID を返す.

    Returns:
        ユーザー ID。トークンなし・無効の場合は None。
    """
    if not access_token:
        return None
    try:
        resp = _get_client().auth.get_user(access_token)
    except AuthError as e:
        logger.warning("トークン検証失敗: %s", e)
        return None
    if resp is None or resp.user is None:
        return None
    return resp.user.id


def get_keywords_for_import(import_id: str, user_id: str) -> list[Keyword]:
    """インポートに属するキーワードを取得する（user_id で絞り込み）."""
    try:
        resp = (
            _table("keywords")
            .select("*")
            .eq("import_id", import_id)
            .eq("user_id", user_id)
            .execute()
        )
    except _STORE_ERRORS as e:
        logger.error("keywords 取得失敗: import_id=%s, error=%s", import_id, _error_message(e))
        raise StoreError(f"Failed to fetch keywords: {_error_message(e)}") from e

    return [Keyword.from_row(row) for row in resp.data]


def insert_search_results(records: list[SearchResultRecord]) -> int:
    """検索結果レコードを一括挿入する.

    Returns:
        挿入件数。空リストなら DB にアクセスせず 0。

    Raises:
        PersistenceError: 挿入失敗
    """
    if not records:
        return 0
    try:
        _table("search_results").insert([r.to_row() for r in records]).execute()
    except _STORE_ERRORS as e:
        logger.error("search_results 挿入失敗: query=%s, error=%s", records[0].query, _error_message(e))
        raise PersistenceError(records[0].query, _error_message(e)) from e
    logger.info("search_results に %d 件挿入", len(records))
    return len(records)


def list_imports(user_id: str) -> list[Import]:
    """ユーザーのインポート一覧を新しい順に取得する."""
    try:
        resp = (
            _table("imports")
            .select("*")
            .eq("user_id", user_id)
            .order("upload_date", desc=True)
            .execute()
        )
    except _STORE_ERRORS as e:
        logger.error("imports 取得失敗: user_id=%s, error=%s", user_id, _error_message(e))
        raise StoreError(f"Failed to fetch imports: {_error_message(e)}") from e

    return [Import.from_row(row) for row in resp.data]


def create_import(user_id: str, file_name: str, keywords: list[str]) -> Import:
    """インポートレコードを作成し、キーワードをチャンク単位で挿入する.

    キーワード挿入に失敗した場合はインポートレコードを削除する。
    """
    try:
        resp = (
            _table("imports")
            .insert({
                "user_id": user_id,
                "file_name": file_name,
                "total_keywords": len(keywords),
            })
            .execute()
        )
    except _STORE_ERRORS as e:
        logger.error("imports 作成失敗: file_name=%s, error=%s", file_name, _error_message(e))
        raise StoreError(f"Failed to create import record: {_error_message(e)}") from e

    import_record = Import.from_row(resp.data[0])
    rows = [
        {
            "file_name": file_name,
            "keyword": keyword,
            "user_id": user_id,
            "import_id": import_record.id,
        }
        for keyword in keywords
    ]

    total_chunks = (len(rows) + KEYWORD_INSERT_CHUNK_SIZE - 1) // KEYWORD_INSERT_CHUNK_SIZE
    for i in range(0, len(rows), KEYWORD_INSERT_CHUNK_SIZE):
        chunk = rows[i:i + KEYWORD_INSERT_CHUNK_SIZE]
        logger.info("keywords 挿入中: chunk %d/%d", i // KEYWORD_INSERT_CHUNK_SIZE + 1, total_chunks)
        try:
            _table("keywords").insert(chunk).execute()
        except _STORE_ERRORS as e:
            logger.error("keywords 挿入失敗。import を削除: import_id=%s, error=%s",
                         import_record.id, _error_message(e))
            try:
                _table("imports").delete().eq("id", import_record.id).execute()
            except _STORE_ERRORS as cleanup_error:
                logger.error("import 削除失敗: import_id=%s, error=%s",
                             import_record.id, _error_message(cleanup_error))
            raise StoreError(f"Failed to save keywords: {_error_message(e)}") from e

    logger.info("keywords に %d 件挿入: import_id=%s", len(rows), import_record.id)
    return import_record


def get_search_results_for_import(import_id: str, user_id: str) -> list[dict]:
    """インポートの検索結果を query → position 順で取得する."""
    try:
        resp = (
            _table("search_results")
            .select("*")
            .eq("import_id", import_id)
            .eq("user_id", user_id)
            .order("query")
            .order("position")
            .execute()
        )
    except _STORE_ERRORS as e:
        logger.error("search_results 取得失敗: import_id=%s, error=%s", import_id, _error_message(e))
        raise StoreError(f"Failed to fetch search results: {_error_message(e)}") from e

    return resp.data
