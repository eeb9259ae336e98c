"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Supabase ---
# クライアント生成時に検証する（import 時には要求しない）
SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.environ.get("SUPABASE_SECRET_KEY", "")
SUPABASE_SCHEMA: str = os.environ.get("SUPABASE_SCHEMA", "public")

# --- Serper.dev ---
# 未設定はリクエスト単位で ConfigurationError として扱う
SERPER_API_KEY: str | None = os.environ.get("SERPER_API_KEY") or None
SERPER_ENDPOINT = "https://google.serper.dev/search"

# 検索ロケールは英国・英語固定
SEARCH_PARAMS = {
    "gl": "gb",
    "location": "United Kingdom",
    "hl": "en",
}

# --- リクエスト設定 ---
REQUEST_TIMEOUT = 15  # 秒
REQUEST_INTERVAL = 0.1  # 秒（キーワード間の固定待機）

# --- 検索結果 ---
MAX_ORGANIC_RESULTS = 10

# --- CSV 取り込み ---
KEYWORDS_COLUMN = "Keywords"
KEYWORD_INSERT_CHUNK_SIZE = 500

# --- ログ ---
LOG_DIR = _PROJECT_ROOT / "logs"
