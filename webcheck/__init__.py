"""
webcheck — ブラウザ E2E チェックランナー

フォールバックセレクタによる堅牢な操作と、テスト実行記録・レポート生成を提供する。
"""

__version__ = "0.1.0"
