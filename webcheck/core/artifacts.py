"""
ScreenshotStore — スクリーンショットの保存先管理

シナリオ中のスクリーンショットを <directory>/<name>_<browser>.png に保存する。
保存はベストエフォートで、失敗してもシナリオは継続する。
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .session import BrowserSession

_UNSAFE_CHARS = re.compile(r"[^\w\-]")
"""ファイル名に使用できない文字を検出する正規表現。"""


@dataclass
class ScreenshotStore:
    """スクリーンショットの保存先。

    Attributes:
        directory: 保存先ディレクトリ
        browser: ファイル名に付与するブラウザ名
    """

    directory: Path = field(default_factory=lambda: Path("screenshots"))
    browser: str = "chromium"

    def path_for(self, name: str) -> Path:
        """スクリーンショット名から保存先パスを決める。"""
        return self.directory / f"{_sanitize_name(name)}_{self.browser}.png"

    async def capture(self, session: BrowserSession, name: str) -> Optional[Path]:
        """スクリーンショットを保存する。

        Returns:
            保存したファイルのパス。失敗時は None。
        """
        return await session.capture_screenshot(self.path_for(name))


def _sanitize_name(name: str) -> str:
    """ファイル名に安全な文字列に変換する。

    英数字、ハイフン、アンダースコア以外の文字をハイフンに置換し、
    連続するハイフンを1つにまとめる。
    """
    sanitized = _UNSAFE_CHARS.sub("-", name)
    sanitized = re.sub(r"-+", "-", sanitized)
    return sanitized.strip("-") or "screenshot"
