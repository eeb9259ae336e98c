"""データモデル定義."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class Keyword:
    """keywords テーブルの1行."""

    id: str  # uuid
    keyword: str
    user_id: str  # uuid
    import_id: str  # uuid
    file_name: str

    @classmethod
    def from_row(cls, row: dict) -> Keyword:
        return cls(
            id=row["id"],
            keyword=row["keyword"],
            user_id=row["user_id"],
            import_id=row["import_id"],
            file_name=row.get("file_name", ""),
        )


@dataclass
class Import:
    """imports テーブルの1行（CSV アップロード1回分）."""

    id: str  # uuid
    user_id: str  # uuid
    file_name: str
    upload_date: str  # ISO 8601
    total_keywords: int

    @classmethod
    def from_row(cls, row: dict) -> Import:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            file_name=row["file_name"],
            upload_date=row.get("upload_date", ""),
            total_keywords=row.get("total_keywords", 0),
        )


@dataclass
class SearchResultRecord:
    """DB に書き込む検索結果レコード."""

    query: str  # 元のキーワード
    position: int  # Serper の順位（1始まり、そのまま保存）
    link: str
    user_id: str  # uuid
    import_id: str  # uuid

    def to_row(self) -> dict:
        return asdict(self)


@dataclass
class ProcessedSearchResult:
    """1キーワード分の処理結果."""

    keyword: str
    keyword_id: str
    total_results: int  # Serper が返した organic 件数
    saved_results: int  # 実際に保存した件数
    search_data: dict = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict:
        return {
            "keyword": self.keyword,
            "keywordId": self.keyword_id,
            "totalResults": self.total_results,
            "savedResults": self.saved_results,
        }


@dataclass
class KeywordFailure:
    """1キーワード分の失敗."""

    keyword: str
    error: str

    def to_dict(self) -> dict:
        return {"keyword": self.keyword, "error": self.error}


@dataclass
class KeywordOutcome:
    """1キーワードの結果. result と failure のどちらか一方だけが入る."""

    result: ProcessedSearchResult | None = None
    failure: KeywordFailure | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class BatchSummary:
    """バッチ1回分の集計."""

    total_keywords: int
    results: list[ProcessedSearchResult] = field(default_factory=list)
    failures: list[KeywordFailure] = field(default_factory=list)

    @property
    def keywords_processed(self) -> int:
        return len(self.results)

    @property
    def keywords_failed(self) -> int:
        return len(self.failures)

    @property
    def total_search_results(self) -> int:
        return sum(r.total_results for r in self.results)

    @property
    def total_results_saved(self) -> int:
        return sum(r.saved_results for r in self.results)

    def counts(self) -> dict:
        return {
            "totalKeywords": self.total_keywords,
            "keywordsProcessed": self.keywords_processed,
            "keywordsFailed": self.keywords_failed,
            "totalSearchResults": self.total_search_results,
            "totalResultsSaved": self.total_results_saved,
        }
