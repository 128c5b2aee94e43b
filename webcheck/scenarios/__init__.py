# シナリオモジュール
# 実行対象のシナリオ（名前とシナリオ関数の組）を提供

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from .parabank import SCENARIOS, customer_registration, user_login

if TYPE_CHECKING:
    from ..core.runner import ScenarioFn


def select_scenarios(names: Optional[Sequence[str]] = None) -> list[tuple[str, ScenarioFn]]:
    """名前でシナリオを絞り込む。names が空なら全シナリオを登録順で返す。

    名前は完全一致、または "TC 001" のような前方一致で指定できる。

    Raises:
        KeyError: どのシナリオにも一致しない名前がある場合
    """
    if not names:
        return list(SCENARIOS)

    selected: list[tuple[str, ScenarioFn]] = []
    for name in names:
        matches = [s for s in SCENARIOS if s[0] == name or s[0].startswith(name)]
        if not matches:
            raise KeyError(f"シナリオが見つかりません: {name}")
        for match in matches:
            if match not in selected:
                selected.append(match)
    return selected


__all__ = [
    "SCENARIOS",
    "customer_registration",
    "select_scenarios",
    "user_login",
]
