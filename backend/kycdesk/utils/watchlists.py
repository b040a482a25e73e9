"""Sanctions / PEP / adverse-media list matching.

The built-in lists are demonstration data. Deployments extend them with a JSON
file (``WATCHLIST_FILE``) or a JSON feed (``WATCHLIST_URL``) shaped as::

    {"sanctions": [{"name": "...", "country": "..."}], "pep": [...], "adverse_media": [...]}

Matching is a linear scan: a normalized exact name hit scores the list's exact
score, containment in either direction scores its partial score, and the first
hit in a list wins.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import requests
from flask import current_app

SCREENING_LISTS: Dict[str, tuple] = {
    "sanctions": ("sanctions",),
    "pep": ("pep",),
    "adverse_media": ("adverse_media",),
    "watchlist": ("sanctions", "pep", "adverse_media"),
}


@dataclass
class WatchlistEntry:
    name: str
    country: str = ""


@dataclass
class Watchlist:
    kind: str
    label: str
    exact_score: int
    partial_score: int
    exact_template: str
    partial_template: str
    entries: List[WatchlistEntry] = field(default_factory=list)


@dataclass
class MatchResult:
    match_found: bool = False
    match_score: float = 0.0
    match_details: Optional[str] = None
    matched_lists: List[str] = field(default_factory=list)


def builtin_watchlists() -> Dict[str, Watchlist]:
    return {
        "sanctions": Watchlist(
            kind="sanctions",
            label="UN Sanctions List",
            exact_score=95,
            partial_score=60,
            exact_template="Exact match found in sanctions list: {name}",
            partial_template="Partial match found in sanctions list: {name}",
            entries=[WatchlistEntry("John Doe", "US")],
        ),
        "pep": Watchlist(
            kind="pep",
            label="PEP Database",
            exact_score=90,
            partial_score=55,
            exact_template="Match found in PEP database: {name}",
            partial_template="Partial match found in PEP database: {name}",
            entries=[WatchlistEntry("Jane Smith", "UAE")],
        ),
        "adverse_media": Watchlist(
            kind="adverse_media",
            label="Adverse Media",
            exact_score=85,
            partial_score=50,
            exact_template="Match found in adverse media: {name}",
            partial_template="Partial match found in adverse media: {name}",
            entries=[],
        ),
    }


def normalize_name(name: str | None) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def match_name(name: str | None, wl: Watchlist) -> Optional[MatchResult]:
    client_name = normalize_name(name)
    if not client_name:
        return None
    for entry in wl.entries:
        entry_name = normalize_name(entry.name)
        if not entry_name:
            continue
        if client_name == entry_name:
            return MatchResult(
                match_found=True,
                match_score=float(wl.exact_score),
                match_details=wl.exact_template.format(name=entry.name),
                matched_lists=[wl.label],
            )
        if entry_name in client_name or client_name in entry_name:
            return MatchResult(
                match_found=True,
                match_score=float(wl.partial_score),
                match_details=wl.partial_template.format(name=entry.name),
                matched_lists=[wl.label],
            )
    return None


def screen_name(name: str | None, screening_type: str, watchlists: Dict[str, Watchlist] | None = None) -> MatchResult:
    lists = watchlists if watchlists is not None else get_watchlists()
    kinds = SCREENING_LISTS.get(screening_type)
    if kinds is None:
        raise ValueError(f"Unknown screening type: {screening_type}")

    hits: List[MatchResult] = []
    for kind in kinds:
        wl = lists.get(kind)
        if not wl:
            continue
        hit = match_name(name, wl)
        if hit:
            hits.append(hit)

    if not hits:
        return MatchResult()

    best = max(hits, key=lambda h: h.match_score)
    return MatchResult(
        match_found=True,
        match_score=best.match_score,
        match_details="; ".join(h.match_details for h in hits if h.match_details),
        matched_lists=[label for h in hits for label in h.matched_lists],
    )


def _merge_entries(lists: Dict[str, Watchlist], payload) -> int:
    if not isinstance(payload, dict):
        raise ValueError("watchlist payload must be an object keyed by list kind")
    added = 0
    for kind, rows in payload.items():
        wl = lists.get(kind)
        if wl is None or not isinstance(rows, list):
            continue
        for row in rows:
            if isinstance(row, str):
                row = {"name": row}
            if not isinstance(row, dict):
                continue
            entry_name = (row.get("name") or "").strip()
            if not entry_name:
                continue
            wl.entries.append(WatchlistEntry(entry_name, (row.get("country") or "").strip()))
            added += 1
    return added


def _fetch_feed(url: str) -> dict:
    r = requests.get(url, timeout=20)
    r.raise_for_status()
    return r.json()


def load_watchlists(app) -> Dict[str, Watchlist]:
    lists = builtin_watchlists()

    path = (app.config.get("WATCHLIST_FILE") or "").strip()
    if path:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                added = _merge_entries(lists, json.load(fh))
            app.logger.info("Loaded %s watchlist entries from %s", added, path)
        except (OSError, ValueError) as e:
            app.logger.warning("Could not load watchlist file %s: %s", path, e)

    url = (app.config.get("WATCHLIST_URL") or "").strip()
    if url:
        try:
            added = _merge_entries(lists, _fetch_feed(url))
            app.logger.info("Loaded %s watchlist entries from %s", added, url)
        except (requests.RequestException, ValueError) as e:
            app.logger.warning("Could not fetch watchlist feed %s: %s", url, e)

    return lists


def get_watchlists() -> Dict[str, Watchlist]:
    lists = current_app.extensions.get("kyc_watchlists")
    if lists is None:
        lists = load_watchlists(current_app)
        current_app.extensions["kyc_watchlists"] = lists
    return lists


def list_counts(lists: Dict[str, Watchlist]) -> Dict[str, int]:
    return {kind: len(wl.entries) for kind, wl in lists.items()}