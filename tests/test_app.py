"""Flask エンドポイントのテスト."""

import io
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from kwsearch.app import create_app
from kwsearch.errors import StoreError
from kwsearch.models import Import, Keyword

FIXTURES_DIR = Path(__file__).parent / "fixtures"
AUTH = {"Authorization": "Bearer test-token"}


def _load_fixture(name: str) -> dict:
    return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))


def _response(status_code=200, data=None, reason="OK"):
    resp = MagicMock()
    resp.ok = 200 <= status_code < 300
    resp.status_code = status_code
    resp.reason = reason
    resp.json.return_value = data
    return resp


def _keywords(*texts):
    return [
        Keyword(id=f"kw-{i}", keyword=text, user_id="user-1",
                import_id="import-1", file_name="kw.csv")
        for i, text in enumerate(texts, start=1)
    ]


@pytest.fixture
def client():
    app = create_app({"TESTING": True, "SERPER_API_KEY": "test-key", "REQUEST_INTERVAL": 0})
    with patch("kwsearch.db.get_user_id", return_value="user-1"):
        yield app.test_client()


class TestSearchKeywords:
    """POST /search-keywords/<import_id> のテスト."""

    @patch("kwsearch.db._table")
    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_shoes_and_boots(self, mock_post, mock_get, mock_table, client):
        mock_get.return_value = _keywords("shoes", "boots")
        mock_post.side_effect = [
            _response(data=_load_fixture("serper_shoes.json")),
            _response(data=_load_fixture("serper_boots.json")),
        ]
        chain = MagicMock()
        chain.insert.return_value = chain
        mock_table.return_value = chain

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["importId"] == "import-1"
        assert body["summary"] == {
            "totalKeywords": 2,
            "keywordsProcessed": 2,
            "keywordsFailed": 0,
            "totalSearchResults": 15,
            "totalResultsSaved": 13,
        }
        assert body["processedResults"] == [
            {"keyword": "shoes", "keywordId": "kw-1", "totalResults": 12, "savedResults": 10},
            {"keyword": "boots", "keywordId": "kw-2", "totalResults": 3, "savedResults": 3},
        ]
        assert "errors" not in body
        assert body["message"] == "Successfully searched 2 out of 2 keywords"
        mock_get.assert_called_once_with("import-1", "user-1")

    @patch("kwsearch.db._table")
    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_provider_403_is_still_200(self, mock_post, mock_get, mock_table, client):
        mock_get.return_value = _keywords("shoes")
        mock_post.return_value = _response(status_code=403, reason="Forbidden")

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["summary"]["keywordsProcessed"] == 0
        assert body["summary"]["keywordsFailed"] == 1
        assert body["errors"][0]["keyword"] == "shoes"
        assert "403" in body["errors"][0]["error"]
        mock_table.assert_not_called()

    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_no_keywords_404(self, mock_post, mock_get, client):
        mock_get.return_value = []

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 404
        assert resp.get_json() == {"error": "No keywords found for this import"}
        mock_post.assert_not_called()

    @patch("kwsearch.serper.requests.post")
    def test_unauthenticated_401(self, mock_post, client):
        with patch("kwsearch.db.get_user_id", return_value=None):
            resp = client.post("/search-keywords/import-1")

        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Unauthorized"}
        mock_post.assert_not_called()

    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_missing_api_key_500(self, mock_post, mock_get):
        app = create_app({"TESTING": True, "SERPER_API_KEY": None, "REQUEST_INTERVAL": 0})
        mock_get.return_value = _keywords("shoes")

        with patch("kwsearch.db.get_user_id", return_value="user-1"):
            resp = app.test_client().post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "API configuration error"}
        mock_post.assert_not_called()

    def test_database_not_configured_500(self):
        app = create_app({"TESTING": True, "SERPER_API_KEY": "test-key", "REQUEST_INTERVAL": 0})

        with patch("kwsearch.db._client", None), patch("kwsearch.db.SUPABASE_URL", ""):
            resp = app.test_client().post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Database configuration error"}

    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_non_object_serper_body_isolated(self, mock_post, mock_get, client):
        mock_get.return_value = _keywords("a", "b")
        mock_post.side_effect = [
            _response(data=None),
            _response(data={"organic": []}),
        ]

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["summary"]["keywordsFailed"] == 1
        assert body["summary"]["keywordsProcessed"] == 1
        assert body["errors"][0]["keyword"] == "a"

    @patch("kwsearch.db.get_keywords_for_import")
    def test_keyword_query_failure_500(self, mock_get, client):
        mock_get.side_effect = StoreError("Failed to fetch keywords: boom")

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to fetch keywords"}

    @patch("kwsearch.db.get_keywords_for_import")
    @patch("kwsearch.serper.requests.post")
    def test_unexpected_error_500(self, mock_post, mock_get, client):
        mock_get.return_value = _keywords("shoes")
        mock_post.side_effect = RuntimeError("unexpected")

        resp = client.post("/search-keywords/import-1", headers=AUTH)

        assert resp.status_code == 500
        assert resp.get_json() == {
            "success": False,
            "error": "Internal server error",
            "details": "unexpected",
        }


class TestUploadKeywords:
    """POST /imports のテスト."""

    @patch("kwsearch.db.create_import")
    def test_upload(self, mock_create, client):
        mock_create.return_value = Import(
            id="import-1", user_id="user-1", file_name="kw.csv",
            upload_date="2026-10-01T00:00:00+00:00", total_keywords=2,
        )
        data = {"file": (io.BytesIO(b"Keywords\nshoes\n  \nboots \n"), "kw.csv")}

        resp = client.post("/imports", headers=AUTH, data=data,
                           content_type="multipart/form-data")

        assert resp.status_code == 201
        assert resp.get_json() == {
            "importId": "import-1",
            "fileName": "kw.csv",
            "totalKeywords": 2,
            "uploadDate": "2026-10-01T00:00:00+00:00",
        }
        mock_create.assert_called_once_with("user-1", "kw.csv", ["shoes", "boots"])

    @patch("kwsearch.db.create_import")
    def test_rejects_non_csv(self, mock_create, client):
        data = {"file": (io.BytesIO(b"Keywords\nshoes\n"), "kw.txt")}

        resp = client.post("/imports", headers=AUTH, data=data,
                           content_type="multipart/form-data")

        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Please select a CSV file"}
        mock_create.assert_not_called()

    @patch("kwsearch.db.create_import")
    def test_rejects_missing_column(self, mock_create, client):
        data = {"file": (io.BytesIO(b"Query\nshoes\n"), "kw.csv")}

        resp = client.post("/imports", headers=AUTH, data=data,
                           content_type="multipart/form-data")

        assert resp.status_code == 400
        assert "Keywords" in resp.get_json()["error"]
        mock_create.assert_not_called()


class TestReadResults:
    """GET /imports 系のテスト."""

    @patch("kwsearch.db.list_imports")
    def test_list_imports(self, mock_list, client):
        mock_list.return_value = [Import(
            id="import-1", user_id="user-1", file_name="kw.csv",
            upload_date="2026-10-01T00:00:00+00:00", total_keywords=2,
        )]

        resp = client.get("/imports", headers=AUTH)

        assert resp.status_code == 200
        assert resp.get_json()["imports"] == [{
            "id": "import-1",
            "fileName": "kw.csv",
            "uploadDate": "2026-10-01T00:00:00+00:00",
            "totalKeywords": 2,
        }]
        mock_list.assert_called_once_with("user-1")

    @patch("kwsearch.db.get_search_results_for_import")
    def test_results_grouped(self, mock_get, client):
        mock_get.return_value = [
            {"query": "boots", "position": 1, "link": "https://a.example"},
            {"query": "boots", "position": 2, "link": "https://b.example"},
            {"query": "shoes", "position": 1, "link": "https://c.example"},
        ]

        resp = client.get("/imports/import-1/results", headers=AUTH)

        body = resp.get_json()
        assert body["totalResults"] == 3
        assert [g["keyword"] for g in body["keywords"]] == ["boots", "shoes"]
        assert len(body["keywords"][0]["results"]) == 2
        mock_get.assert_called_once_with("import-1", "user-1")

    @patch("kwsearch.db.get_search_results_for_import")
    def test_export_csv(self, mock_get, client):
        mock_get.return_value = [
            {"query": "boots", "position": 1, "link": "https://a.example"},
        ]

        resp = client.get("/imports/import-1/results.csv", headers=AUTH)

        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).splitlines() == [
            "Keyword,Position,Link",
            "boots,1,https://a.example",
        ]

    def test_unknown_route_404(self, client):
        resp = client.get("/nope", headers=AUTH)
        assert resp.status_code == 404
