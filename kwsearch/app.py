"""Flask アプリケーション — HTTP エンドポイント.

認証は Authorization: Bearer <Supabase アクセストークン>。
"""

from __future__ import annotations

import logging

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from kwsearch import config, db
from kwsearch.batch import KeywordSearchBatch
from kwsearch.csv_io import export_results_csv, group_results_by_keyword, parse_keywords_csv
from kwsearch.errors import (
    ConfigurationError,
    InvalidUpload,
    NotFound,
    StoreError,
    Unauthenticated,
)
from kwsearch.rate_limit import IntervalRateLimiter

logger = logging.getLogger(__name__)

bp = Blueprint("kwsearch", __name__)


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _require_user() -> str:
    user_id = db.get_user_id(_bearer_token())
    if not user_id:
        raise Unauthenticated()
    return user_id


@bp.route("/search-keywords/<import_id>", methods=["POST"])
def search_keywords(import_id: str):
    """インポートの全キーワードを検索し、結果を保存する."""
    user_id = _require_user()

    try:
        keywords = db.get_keywords_for_import(import_id, user_id)
    except StoreError:
        return jsonify({"error": "Failed to fetch keywords"}), 500

    batch = KeywordSearchBatch(
        current_app.config.get("SERPER_API_KEY"),
        rate_limiter=IntervalRateLimiter(current_app.config["REQUEST_INTERVAL"]),
    )
    summary = batch.run(user_id, import_id, keywords)

    body = {
        "success": True,
        "importId": import_id,
        "summary": summary.counts(),
        "processedResults": [r.to_dict() for r in summary.results],
        "message": (
            f"Successfully searched {summary.keywords_processed} "
            f"out of {summary.total_keywords} keywords"
        ),
    }
    if summary.failures:
        body["errors"] = [f.to_dict() for f in summary.failures]
    return jsonify(body)


@bp.route("/imports", methods=["POST"])
def upload_keywords():
    """CSV をアップロードしてインポートとキーワードを作成する."""
    user_id = _require_user()

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise InvalidUpload("No file uploaded")
    if not upload.filename.lower().endswith(".csv"):
        raise InvalidUpload("Please select a CSV file")

    try:
        text = upload.read().decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUpload("CSV file must be UTF-8 encoded") from e

    keywords = parse_keywords_csv(text)
    logger.info("CSV 取り込み: file=%s, keywords=%d 件", upload.filename, len(keywords))
    import_record = db.create_import(user_id, upload.filename, keywords)

    return jsonify({
        "importId": import_record.id,
        "fileName": import_record.file_name,
        "totalKeywords": len(keywords),
        "uploadDate": import_record.upload_date,
    }), 201


@bp.route("/imports", methods=["GET"])
def list_imports():
    user_id = _require_user()
    imports = db.list_imports(user_id)
    return jsonify({
        "imports": [
            {
                "id": i.id,
                "fileName": i.file_name,
                "uploadDate": i.upload_date,
                "totalKeywords": i.total_keywords,
            }
            for i in imports
        ]
    })


@bp.route("/imports/<import_id>/results", methods=["GET"])
def get_results(import_id: str):
    user_id = _require_user()
    rows = db.get_search_results_for_import(import_id, user_id)
    return jsonify({
        "importId": import_id,
        "totalResults": len(rows),
        "keywords": group_results_by_keyword(rows),
    })


@bp.route("/imports/<import_id>/results.csv", methods=["GET"])
def export_results(import_id: str):
    user_id = _require_user()
    rows = db.get_search_results_for_import(import_id, user_id)
    return Response(
        export_results_csv(rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename=search_results_{import_id}.csv"},
    )


@bp.app_errorhandler(Unauthenticated)
def _handle_unauthenticated(e):
    return jsonify({"error": str(e)}), 401


@bp.app_errorhandler(NotFound)
def _handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@bp.app_errorhandler(InvalidUpload)
def _handle_invalid_upload(e):
    return jsonify({"error": str(e)}), 400


@bp.app_errorhandler(ConfigurationError)
def _handle_configuration_error(e):
    return jsonify({"error": str(e)}), 500


@bp.app_errorhandler(StoreError)
def _handle_store_error(e):
    return jsonify({"error": str(e)}), 500


@bp.app_errorhandler(Exception)
def _handle_internal_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception("予期しないエラー: %s", e)
    return jsonify({"success": False, "error": "Internal server error", "details": str(e)}), 500


def create_app(overrides: dict | None = None) -> Flask:
    """Flask アプリを生成する."""
    app = Flask(__name__)
    app.config.update(
        SERPER_API_KEY=config.SERPER_API_KEY,
        REQUEST_INTERVAL=config.REQUEST_INTERVAL,
    )
    if overrides:
        app.config.update(overrides)
    app.register_blueprint(bp)
    return app
