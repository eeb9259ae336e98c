"""キーワード検索サービス — メインエントリーポイント.

  serve                         HTTP サーバーを起動
  search <user_id> <import_id>  1インポート分のバッチをコマンドラインから実行
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime

from kwsearch.config import LOG_DIR, SERPER_API_KEY


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"kwsearch_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def run(argv: list[str] | None = None) -> int:
    """メイン処理."""
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()
    logger = logging.getLogger(__name__)

    command = argv[0] if argv else "serve"
    if command == "serve":
        from kwsearch.app import create_app

        create_app().run()
        return 0

    if command == "search" and len(argv) == 3:
        from kwsearch.batch import KeywordSearchBatch
        from kwsearch.errors import KwsearchError

        _, user_id, import_id = argv
        try:
            summary = KeywordSearchBatch(SERPER_API_KEY).search_import(user_id, import_id)
        except KwsearchError as e:
            logger.error("バッチ実行不可: %s", e)
            return 1
        for failure in summary.failures:
            logger.warning("失敗: keyword=%s, error=%s", failure.keyword, failure.error)
        return 0 if not summary.failures else 1

    print(__doc__, file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(run())
