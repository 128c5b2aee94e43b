"""
検証ヘルパー — 操作後のページ状態の確認

シナリオの最後に URL / タイトル / 本文を確認し、期待を満たさなければ
VerificationError を送出する。

  - expect_text: 本文に期待する文字列が含まれること
  - expect_any: 複数の成功指標のうちいずれかを満たすこと
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from .errors import VerificationError

if TYPE_CHECKING:
    from .session import BrowserSession

logger = logging.getLogger(__name__)

_EXCERPT_LEN = 200


@dataclass
class PageSnapshot:
    """検証時点のページ状態。"""

    url: str
    title: str
    text: str

    @classmethod
    async def capture(cls, session: BrowserSession) -> PageSnapshot:
        return cls(
            url=await session.current_url(),
            title=await session.read_title(),
            text=await session.read_text(),
        )

    def excerpt(self) -> str:
        text = " ".join(self.text.split())
        if len(text) > _EXCERPT_LEN:
            return text[:_EXCERPT_LEN] + "..."
        return text


async def expect_text(session: BrowserSession, expected: str) -> None:
    """本文に expected が含まれることを確認する。

    Raises:
        VerificationError: 含まれない場合（実際の本文の抜粋を含む）
    """
    snapshot = await PageSnapshot.capture(session)
    if expected in snapshot.text:
        return
    raise VerificationError(
        f"ページ本文に '{expected}' が見つかりません"
        f"（URL: {snapshot.url}, タイトル: {snapshot.title}, 本文: {snapshot.excerpt()!r}）"
    )


async def expect_any(
    session: BrowserSession,
    *,
    text: Sequence[str] = (),
    title: Sequence[str] = (),
    url: Sequence[str] = (),
    message: str = "成功の指標が見つかりません",
) -> str:
    """本文・タイトル・URL のいずれかが指標を含むことを確認する。

    Args:
        session: ブラウザセッション
        text: 本文に含まれていればよい文字列
        title: タイトルに含まれていればよい文字列
        url: URL に含まれていればよい文字列
        message: 失敗時のメッセージ

    Returns:
        一致した指標の説明（例: "url contains 'overview'"）

    Raises:
        VerificationError: どの指標にも一致しない場合
    """
    snapshot = await PageSnapshot.capture(session)
    checks = (
        ("text", text, snapshot.text),
        ("title", title, snapshot.title),
        ("url", url, snapshot.url),
    )
    for kind, needles, haystack in checks:
        for needle in needles:
            if needle in haystack:
                return f"{kind} contains '{needle}'"

    logger.info(
        "検証詳細 - URL: %s, タイトル: %s, 本文の先頭: %s",
        snapshot.url, snapshot.title, snapshot.excerpt(),
    )
    raise VerificationError(
        f"{message}（URL: {snapshot.url}, タイトル: {snapshot.title}）"
    )
