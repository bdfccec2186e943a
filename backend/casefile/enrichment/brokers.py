"""People-search broker URL generation.

No network calls: this only builds the search URLs an analyst opens to
check whether the subject is listed.
"""

from __future__ import annotations

import re

from casefile.models.outcomes import BrokerLink

# (broker, URL template, what the broker typically exposes)
BROKERS: tuple[tuple[str, str, str], ...] = (
    (
        "Spokeo",
        "https://www.spokeo.com/{first}-{last}/{state}",
        "Major aggregator: name, address, phone, relatives, email",
    ),
    (
        "WhitePages",
        "https://www.whitepages.com/name/{first}-{last}/{state}",
        "Phone-focused: phone numbers, addresses, associates",
    ),
    (
        "BeenVerified",
        "https://www.beenverified.com/people/{first}-{last}/{state}/",
        "Comprehensive: addresses, phones, emails, court records",
    ),
    (
        "TruePeopleSearch",
        "https://www.truepeoplesearch.com/results?name={first}%20{last}&citystatezip={state}",
        "Free results: name, address, phone, relatives",
    ),
    (
        "FastPeopleSearch",
        "https://www.fastpeoplesearch.com/name/{first}-{last}_{state}",
        "Free results: address, phone, email, relatives",
    ),
    (
        "Radaris",
        "https://radaris.com/p/{first}/{last}/{state}/",
        "Addresses, phones, public records, social profiles",
    ),
    (
        "ThatsThem",
        "https://thatsthem.com/name/{first}-{last}/{state}",
        "Address, phone, email, IP addresses",
    ),
    (
        "PeopleFinder",
        "https://www.peoplefinder.com/results.php?name={first}+{last}&location={state}",
        "Addresses, phone numbers, relatives",
    ),
)

_INITIAL = re.compile(r"\b\w\.\s*")


def generate_broker_check_urls(full_name: str | None, state: str | None) -> list[BrokerLink]:
    """Build one search link per broker for *full_name* in *state*.

    Middle initials ("J.") are dropped and only the first and last name
    tokens are used.  Returns an empty list when either input is missing.
    """
    if not full_name or not state or not state.strip():
        return []

    parts = _INITIAL.sub("", full_name).split()
    if not parts:
        return []
    first, last = parts[0].lower(), parts[-1].lower()
    region = state.strip().lower()

    return [
        BrokerLink(name=name, url=template.format(first=first, last=last, state=region), notes=notes)
        for name, template, notes in BROKERS
    ]
