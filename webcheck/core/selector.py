"""
セレクタリゾルバ — 候補セレクタのフォールバック解決

1 つの論理的な操作対象（"Register link" 等）に対して複数の候補セレクタを
優先順に試行し、最初に解決・操作できた候補で成功とする。

主な機能:
  - per_candidate_timeout: タイムアウト予算を候補数で等分する
  - Attempt: 「成功 / 次の候補へ」を表す試行結果
  - SelectorResolver.resolve: 候補を上から順に試行する
  - 全候補失敗時は SelectorExhaustedError（全候補と失敗理由を含む）

候補ごとの待機時間は total / N。候補リストが長いほど 1 候補あたりの
待機は短くなるが、全候補失敗時の合計待機時間は total に収まる。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Sequence

from .errors import SelectorExhaustedError

if TYPE_CHECKING:
    from .session import BrowserSession

logger = logging.getLogger(__name__)

# 解決済みターゲットと候補ごとのタイムアウト（ミリ秒）を受け取って操作を行う
Action = Callable[[Any, float], Awaitable[Any]]


def per_candidate_timeout(total_ms: float, candidate_count: int) -> float:
    """タイムアウト予算を候補数で等分した 1 候補あたりの待機時間（ミリ秒）。

    Args:
        total_ms: 全候補合計のタイムアウト予算（ミリ秒）
        candidate_count: 候補数（1 以上）

    Raises:
        ValueError: candidate_count が 0 以下の場合
    """
    if candidate_count <= 0:
        raise ValueError("候補セレクタが 1 件もありません")
    return total_ms / candidate_count


# ---------------------------------------------------------------------------
# 試行結果
# ---------------------------------------------------------------------------

@dataclass
class CandidateFailure:
    """失敗した候補の情報。

    Attributes:
        index: 候補リスト内のインデックス（0始まり）
        selector: 候補セレクタ
        reason: 失敗理由
    """

    index: int
    selector: str
    reason: str


@dataclass
class Attempt:
    """1 候補の試行結果。ok なら value を返して終了、そうでなければ次の候補へ。"""

    ok: bool
    value: Any = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> Attempt:
        return cls(ok=True, value=value)

    @classmethod
    def skip(cls, reason: str) -> Attempt:
        return cls(ok=False, reason=reason)


# ---------------------------------------------------------------------------
# SelectorResolver 本体
# ---------------------------------------------------------------------------

class SelectorResolver:
    """候補セレクタを優先順に試行し、最初に成功した候補で操作する。

    使用例::

        resolver = SelectorResolver(timeout_ms=45_000)
        await resolver.resolve(session, ["#submit", "text=Submit"], "Submit", action)
    """

    def __init__(self, timeout_ms: float = 45_000) -> None:
        """SelectorResolver を初期化する。

        Args:
            timeout_ms: 1 操作あたりのタイムアウト予算（ミリ秒、全候補合計）
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms は正の値を指定してください: {timeout_ms}")
        self._timeout_ms = timeout_ms

    @property
    def timeout_ms(self) -> float:
        return self._timeout_ms

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def resolve(
        self,
        session: BrowserSession,
        candidates: Sequence[str],
        description: str,
        action: Action,
        timeout_ms: Optional[float] = None,
    ) -> Any:
        """候補を上から順に試行し、最初に成功した候補の操作結果を返す。

        各候補について要素の解決を待機し、続けて action を実行する。解決と action は
        合わせて 1 候補あたりの待機時間（total / N）に収まる。成功した時点で後続候補は試行しない。

        Args:
            session: ブラウザセッション
            candidates: 候補セレクタ（優先順）
            description: 操作対象の説明（ログ・エラーメッセージ用）
            action: 解決済みターゲットに対する操作
            timeout_ms: タイムアウト予算の上書き（省略時はリゾルバの既定値）

        Returns:
            action の戻り値

        Raises:
            ValueError: 候補が空の場合
            SelectorExhaustedError: 全候補が失敗した場合
        """
        total = self._timeout_ms if timeout_ms is None else timeout_ms
        slice_ms = per_candidate_timeout(total, len(candidates))
        failures: list[CandidateFailure] = []

        for idx, selector in enumerate(candidates):
            attempt = await self._attempt(session, selector, slice_ms, action)
            if attempt.ok:
                logger.info(
                    "%s を解決しました（セレクタ: %s）", description, selector
                )
                return attempt.value

            logger.warning(
                "%s をセレクタ %s で解決できませんでした: %s",
                description, selector, attempt.reason,
            )
            failures.append(CandidateFailure(
                index=idx, selector=selector, reason=attempt.reason or "",
            ))

        raise SelectorExhaustedError(description, candidates, failures)

    # -------------------------------------------------------------------
    # 1 候補の試行
    # -------------------------------------------------------------------

    async def _attempt(
        self,
        session: BrowserSession,
        selector: str,
        slice_ms: float,
        action: Action,
    ) -> Attempt:
        """1 候補を試行する。例外は送出せず Attempt に変換する。

        要素の解決と action は同じ 1 候補分の待機時間を共有する。
        action には解決後に残った時間だけを渡す。
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + slice_ms / 1000
        try:
            target = await session.locate(selector, timeout=slice_ms)
            if target is None:
                return Attempt.skip("要素が見つかりません")
            remaining_ms = (deadline - loop.time()) * 1000
            if remaining_ms <= 0:
                return Attempt.skip("要素の解決で待機時間を使い切りました")
            return Attempt.success(await action(target, remaining_ms))
        except Exception as exc:  # noqa: BLE001
            return Attempt.skip(str(exc) or type(exc).__name__)
