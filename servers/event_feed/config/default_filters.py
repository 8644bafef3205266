"""
Default filter keywords to hide low-quality or spam events.

Applied when a feed request leaves use_default_filters on.
"""

DEFAULT_BLOCKED_KEYWORDS = [
    # Certification/training spam
    "certification training",
    "six sigma",
    "lean six sigma",
    "PMP certification",
    "CAPM certification",
    "agile certification",
    "scrum certification",
    "tableau certification",
    "salesforce certification",
    "SAFe certification",
    "SAFe training",
    "Scaled Agile Framework",
    "CBAP",
    "bootcamp training",
    "classroom training",
    "PMI",
    "IIBA",
    "data analytics certification",
    "project management techniques",
    "Conflict Management Training",
    "Walking Tour",
    # App-based / self-guided, always available
    "self-guided",
    "walking tour app",
    "driving tour",
    "GPS app",
    "smartphone guided",
    "Let's Roam",
    "Wacky Walks",
    "Zombie Scavengers",
    "scavenger hunt",
    # Online events marketed as local
    "Online for Asheville",
    "Online talk for Asheville",
    "Online event for Asheville",
    # Templated networking/business
    "Career Fair: Exclusive",
    "Empower Your Finances",
    "DATE THYSELF: Break The Cycle",
    # Wrong city / franchise templates
    "Women in Tech Miami",
    "Ft. Lauderdale",
    "OutGeekWomen",
    # Spam organizers
    "iCertGlobal",
    "Shine BrightX",
    "Learning Zone Inc.",
    "Guard Your Life Challenge",
    # Miscellaneous low-signal
    "vendors needed",
    "spirit rock",
    "Highly rated on Apple",
    "Highly rated on Google Play",
    "DocuSign",
    "Botox",
    "Dermal Filler",
    "history tour",
    "Training Course",
    "real estate investment",
    "prospective homebuyers",
    "Pop the Balloon",
    "AI & Estate Planning",
]

_LOWERED = [kw.lower() for kw in DEFAULT_BLOCKED_KEYWORDS]


def matches_default_filter(text: str) -> bool:
    """Check if text contains any default blocked keyword (case insensitive)."""
    if not text:
        return False
    lower_text = text.lower()
    return any(keyword in lower_text for keyword in _LOWERED)
