"""例外定義.

リクエスト単位の例外（Unauthenticated / NotFound / ConfigurationError /
InvalidUpload）はバッチ開始前に処理全体を中断する。
KeywordSearchError 系はキーワード単位の失敗で、バッチは継続する。
"""

from __future__ import annotations


class KwsearchError(Exception):
    """全例外の基底クラス."""


class Unauthenticated(KwsearchError):
    """認証済みユーザーが特定できない."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(KwsearchError):
    """対象のキーワード・インポートが存在しない."""


class ConfigurationError(KwsearchError):
    """必要な設定値（API キー等）がない."""


class InvalidUpload(KwsearchError):
    """アップロードされた CSV が不正."""


class StoreError(KwsearchError):
    """Supabase の読み出し系クエリ失敗."""


class KeywordSearchError(KwsearchError):
    """キーワード単位の失敗. バッチは中断しない."""

    def __init__(self, keyword: str, message: str):
        super().__init__(message)
        self.keyword = keyword


class ProviderError(KeywordSearchError):
    """Serper API が 2xx 以外を返した."""

    def __init__(self, keyword: str, status_code: int, reason: str = ""):
        message = f'Serper API error for keyword "{keyword}": {status_code} {reason}'.rstrip()
        super().__init__(keyword, message)
        self.status_code = status_code


class TransportError(KeywordSearchError):
    """通信エラー（接続失敗・タイムアウト・不正なレスポンス本文）."""

    def __init__(self, keyword: str, cause: Exception):
        super().__init__(keyword, f'Request failed for keyword "{keyword}": {cause}')
        self.cause = cause


class PersistenceError(KeywordSearchError):
    """search_results への一括挿入に失敗した."""

    def __init__(self, keyword: str, store_message: str):
        super().__init__(keyword, f"Failed to save search results: {store_message}")
