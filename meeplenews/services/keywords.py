from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class KeywordLayer:
    name: str
    keywords: tuple[str, ...]
    query_suffix: str = ""

    def query_for(self, keyword: str) -> str:
        if self.query_suffix and self.query_suffix.lower() not in keyword.lower():
            return f"{keyword} {self.query_suffix}"
        return keyword


GENERAL = KeywordLayer(
    "general",
    (
        "board game news",
        "ボードゲーム 新作",
        "tabletop game new release",
        "board game announcement",
        "ボードゲーム ニュース",
        "board game kickstarter",
        "card game release",
        "ボードゲーム 発売",
    ),
)

MANUFACTURERS = KeywordLayer(
    "manufacturer",
    (
        "Stonemaier Games",
        "Asmodee",
        "CMON",
        "Fantasy Flight Games",
        "Days of Wonder",
        "Z-Man Games",
        "Oink Games",
        "アークライト",
        "ホビージャパン",
        "Uwe Rosenberg",
        "Reiner Knizia",
        "Jamey Stegmaier",
    ),
    query_suffix="board game",
)

EVENTS = KeywordLayer(
    "event",
    (
        "Essen Spiel",
        "Gen Con",
        "ゲームマーケット",
        "Spiel des Jahres",
        "UK Games Expo",
        "Origins Game Fair",
        "PAX Unplugged",
    ),
    query_suffix="board game",
)

TRENDS = KeywordLayer(
    "trend",
    (
        "board game crowdfunding",
        "tabletop industry",
        "board game sales",
        "ボードゲームカフェ",
        "board game app digital adaptation",
        "board game award",
    ),
)


@dataclass(frozen=True, slots=True)
class KeywordCatalog:
    """Ordered search layers; earlier layers carry higher editorial priority."""

    layers: tuple[KeywordLayer, ...] = (GENERAL, MANUFACTURERS, EVENTS, TRENDS)

    def select(self, layer: KeywordLayer, limit: int, seed: int | None = None) -> list[str]:
        """Pick at most ``limit`` keywords from ``layer``.

        Without a seed the first ``limit`` keywords in catalog order are used.
        A seed rotates the selection reproducibly; the picked keywords keep
        their catalog order.
        """
        keywords = list(layer.keywords)
        if limit >= len(keywords):
            return keywords
        if seed is None:
            return keywords[:limit]
        rng = random.Random(f"{seed}:{layer.name}")
        picked = set(rng.sample(range(len(keywords)), limit))
        return [kw for idx, kw in enumerate(keywords) if idx in picked]


DEFAULT_CATALOG = KeywordCatalog()
