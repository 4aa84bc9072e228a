"""
Display labels for places.

Pure projections only: nothing here performs I/O, and every function
returns a non-empty label for any input.
"""
from __future__ import annotations

from typing import Optional

from domain.models import PlaceCandidate

US_STATE_ABBREVIATIONS = {
    "Alabama": "AL",
    "Alaska": "AK",
    "Arizona": "AZ",
    "Arkansas": "AR",
    "California": "CA",
    "Colorado": "CO",
    "Connecticut": "CT",
    "Delaware": "DE",
    "Florida": "FL",
    "Georgia": "GA",
    "Hawaii": "HI",
    "Idaho": "ID",
    "Illinois": "IL",
    "Indiana": "IN",
    "Iowa": "IA",
    "Kansas": "KS",
    "Kentucky": "KY",
    "Louisiana": "LA",
    "Maine": "ME",
    "Maryland": "MD",
    "Massachusetts": "MA",
    "Michigan": "MI",
    "Minnesota": "MN",
    "Mississippi": "MS",
    "Missouri": "MO",
    "Montana": "MT",
    "Nebraska": "NE",
    "Nevada": "NV",
    "New Hampshire": "NH",
    "New Jersey": "NJ",
    "New Mexico": "NM",
    "New York": "NY",
    "North Carolina": "NC",
    "North Dakota": "ND",
    "Ohio": "OH",
    "Oklahoma": "OK",
    "Oregon": "OR",
    "Pennsylvania": "PA",
    "Rhode Island": "RI",
    "South Carolina": "SC",
    "South Dakota": "SD",
    "Tennessee": "TN",
    "Texas": "TX",
    "Utah": "UT",
    "Vermont": "VT",
    "Virginia": "VA",
    "Washington": "WA",
    "West Virginia": "WV",
    "Wisconsin": "WI",
    "Wyoming": "WY",
    "District of Columbia": "DC",
}


def us_state_abbreviation(state: Optional[str]) -> Optional[str]:
    if not state:
        return None
    return US_STATE_ABBREVIATIONS.get(state.strip())


def format_place_label(
    name: Optional[str],
    country: Optional[str],
    state: Optional[str] = None,
    annotate_state: bool = False,
) -> str:
    """
    Build a short human label for a place.

    Rules:
    - US: "<name>, <ST>" when the state is in the table, else "<name>, <state>",
      else "<name>, US".
    - Elsewhere: "<name>, <country>", with " (<state>)" appended when
      ``annotate_state`` is set and a state is known.
    - No country: just the name.
    """
    base = (name or "").strip() or "Unknown place"
    cc = (country or "").strip().upper()
    if not cc:
        return base
    st = (state or "").strip()

    if cc == "US":
        abbr = us_state_abbreviation(st)
        if abbr:
            return f"{base}, {abbr}"
        if st:
            return f"{base}, {st}"
        return f"{base}, US"

    label = f"{base}, {cc}"
    if annotate_state and st:
        label = f"{label} ({st})"
    return label


def format_candidate_label(candidate: PlaceCandidate) -> str:
    """Label used when asking the caller to pick between candidates."""
    if not (candidate.name or "").strip():
        return f"({candidate.lat:.4f}, {candidate.lon:.4f})"
    return format_place_label(
        candidate.name, candidate.country, candidate.state, annotate_state=True
    )
