from __future__ import annotations

from typing import Any, Iterable, Mapping

DEFAULT_HIGH_RISK_COUNTRIES = ("AF", "IQ", "SY", "YE", "LY", "SD")

# Onboarding risk weights
HIGH_RISK_NATIONALITY = 20
MISSING_IDENTIFICATION = 15
MISSING_TRADE_LICENSE = 10
MISSING_ADDRESS = 5
KNOWN_PEP = 30

MAX_RISK_SCORE = 100

HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40

BLOCK_THRESHOLD = 80
FLAG_THRESHOLD = 50


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def risk_flags(data: Mapping[str, Any], high_risk_countries: Iterable[str] | None = None) -> list[tuple[str, int]]:
    """Return the (flag, weight) pairs that apply to an onboarding profile."""
    countries = {c.strip().upper() for c in (high_risk_countries or DEFAULT_HIGH_RISK_COUNTRIES) if c}
    flags: list[tuple[str, int]] = []

    nationality = (data.get("nationality") or "").strip().upper()
    if nationality and nationality in countries:
        flags.append(("high_risk_nationality", HIGH_RISK_NATIONALITY))

    if not _present(data.get("emirates_id")) and not _present(data.get("passport_number")):
        flags.append(("missing_identification", MISSING_IDENTIFICATION))

    if (data.get("client_type") or "individual") == "company" and not _present(data.get("trade_license_number")):
        flags.append(("missing_trade_license", MISSING_TRADE_LICENSE))

    if not _present(data.get("address")):
        flags.append(("missing_address", MISSING_ADDRESS))

    pep = (data.get("pep_status") or "").strip().lower()
    if pep and pep != "none":
        flags.append(("known_pep", KNOWN_PEP))

    return flags


def calculate_initial_risk_score(data: Mapping[str, Any], high_risk_countries: Iterable[str] | None = None) -> int:
    score = sum(weight for _, weight in risk_flags(data, high_risk_countries))
    return min(score, MAX_RISK_SCORE)


def risk_category(score: int) -> str:
    if score >= HIGH_RISK_THRESHOLD:
        return "high"
    if score >= MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "low"


def screening_decision(match_found: bool, match_score: float | None) -> str:
    # A weak match is still cleared; reviewers can override later.
    if not match_found:
        return "cleared"
    score = float(match_score or 0)
    if score >= BLOCK_THRESHOLD:
        return "blocked"
    if score >= FLAG_THRESHOLD:
        return "flagged"
    return "cleared"
