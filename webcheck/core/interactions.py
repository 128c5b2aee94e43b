"""
操作プリミティブ — resolve_and_click / resolve_and_fill

SelectorResolver で対象要素を解決し、クリックまたは値の入力を行う。
呼び出し側から見て操作は全か無か: 解決済みの要素に対して操作が完了したか、
例外が送出されたかのどちらかになる。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

if TYPE_CHECKING:
    from .selector import SelectorResolver
    from .session import BrowserSession


async def resolve_and_click(
    resolver: SelectorResolver,
    session: BrowserSession,
    candidates: Sequence[str],
    description: str,
    timeout_ms: Optional[float] = None,
) -> None:
    """候補セレクタで要素を解決してクリックする。

    Raises:
        SelectorExhaustedError: 全候補でクリックできなかった場合
    """

    async def _click(target: Any, timeout: float) -> None:
        await session.click(target, timeout=timeout)

    await resolver.resolve(session, candidates, description, _click, timeout_ms)


async def resolve_and_fill(
    resolver: SelectorResolver,
    session: BrowserSession,
    candidates: Sequence[str],
    value: str,
    description: str,
    timeout_ms: Optional[float] = None,
) -> None:
    """候補セレクタで要素を解決し、値を入力する。

    入力後に要素の値を読み戻し、一致しなければその候補は失敗として次の候補へ進む。
    値を書き込めなかった場合も解決失敗と同じ SelectorExhaustedError になる。

    Args:
        resolver: セレクタリゾルバ
        session: ブラウザセッション
        candidates: 候補セレクタ（優先順）
        value: 入力する値
        description: 操作対象の説明
        timeout_ms: タイムアウト予算の上書き

    Raises:
        SelectorExhaustedError: 全候補で入力できなかった場合
    """

    async def _fill(target: Any, timeout: float) -> None:
        await session.fill(target, value, timeout=timeout)
        actual = await session.read_value(target)
        if actual != value:
            raise ValueError(
                f"入力値が反映されていません（期待: {value!r}, 実際: {actual!r}）"
            )

    await resolver.resolve(session, candidates, description, _fill, timeout_ms)
