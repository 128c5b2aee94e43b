"""
エラー定義 — シナリオ実行中に送出される例外の分類

  - SelectorExhaustedError: 全候補セレクタが時間内に解決・操作できなかった
  - VerificationError: 操作後の状態検証（URL / タイトル / 本文）に失敗した
  - ResourceError: ブラウザセッションの起動・終了に失敗した
  - ConfigError: 設定ファイル・設定値が不正
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .selector import CandidateFailure


class WebcheckError(Exception):
    """webcheck が送出する例外の基底クラス。"""


class SelectorExhaustedError(WebcheckError):
    """全候補セレクタが失敗した場合のエラー。

    診断用に、操作対象の説明・候補リスト全体・各候補の失敗理由を保持する。

    Attributes:
        description: 操作対象の人間可読な説明（例: "Register link"）
        candidates: 試行した候補セレクタ（優先順）
        failures: 各候補の失敗情報
    """

    def __init__(
        self,
        description: str,
        candidates: Sequence[str],
        failures: Sequence[CandidateFailure] = (),
    ) -> None:
        self.description = description
        self.candidates = list(candidates)
        self.failures = list(failures)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        message = (
            f"{self.description}: 全 {len(self.candidates)} 候補のセレクタで操作できませんでした: "
            f"{', '.join(self.candidates)}"
        )
        if self.failures:
            details = "\n".join(
                f"  [{f.index}] {f.selector}: {f.reason}" for f in self.failures
            )
            message += f"\n試行結果:\n{details}"
        return message


class VerificationError(WebcheckError):
    """シナリオの検証（アサーション）に失敗した場合のエラー。"""


class ResourceError(WebcheckError):
    """ブラウザセッションの起動・終了に失敗した場合のエラー。"""


class ConfigError(WebcheckError):
    """設定ファイルまたは設定値が不正な場合のエラー。"""
