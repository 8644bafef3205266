"""
City extraction from free-text location fields.

Locations arrive as "Asheville, NC", "Black Mountain @ Pisgah Brewing",
or just a venue name ("The Orange Peel"). A curated list of home-area
venues, nearby cities and known out-of-region cities turns them into a
city name for location facets and filters.
"""

from dataclasses import dataclass, field
from typing import Optional

ONLINE = "Online"

HOME_VENUES = [
    # Music venues
    "the orange peel",
    "the grey eagle",
    "pulp",
    "harrah's cherokee center",
    # Breweries and bars
    "cultivated cocktails",
    "sovereign kava",
    "sweeten creek brewing",
    "ginger's revenge",
    "one world brewing",
    "westville pub",
    "the funkatorium",
    "wicked weed",
    "burial beer",
    "highland brewing",
    "green man brewery",
    "catawba brewing",
    "bhramari brewing",
    "wedge brewing",
    "archetype brewing",
    "zillicoah beer",
    "french broad brewery",
    # Other venues
    "the odd",
    "the hop ice cream",
    "biltmore village",
    "haywood park hotel",
    "montford area",
    "uphora dance",
    "grove arcade",
    "pack square",
    "pritchard park",
    "biltmore house",
    "biltmore estate",
    "us cellular center",
    "thomas wolfe auditorium",
    "diana wortham",
    "asheville community theatre",
    "magnetic theatre",
    # Parks
    "carrier park",
    "french broad river park",
    "richmond hill park",
    "beaver lake",
]

KNOWN_CITIES = [
    "Asheville", "Black Mountain", "Weaverville", "Hendersonville", "Arden",
    "Candler", "Swannanoa", "Fletcher", "Mills River", "Brevard",
    "Waynesville", "Mars Hill", "Woodfin", "Leicester", "Fairview",
    "Burnsville", "Morganton", "Flat Rock", "Clyde", "Barnardsville",
    "Enka", "Boone", "Blowing Rock", "Banner Elk", "Maggie Valley",
    "Marshall", "Lake Lure", "Sylva", "Canton", "Bryson City",
    "Lake Junaluska", "Cedar Mountain", "Rutherfordton", "Lake Toxaway",
    "Franklin", "Newland", "Royal Pines", "Pisgah Forest", "Highlands",
    "Cashiers", "Spruce Pine", "Marion", "Old Fort", "Tryon", "Saluda",
    "Columbus", "Mill Spring", "Chimney Rock", "Bat Cave", "Montreat",
    "Ridgecrest",
]

# Out-of-region cities that show up in results; never mapped to a city
EXCLUDED_CITIES = [
    # South Carolina
    "travelers rest", "taylors", "greer", "wellford", "boiling springs",
    "easley", "inman", "pickens", "campobello", "greenville", "spartanburg",
    # Tennessee
    "jonesborough", "telford", "cosby", "gatlinburg", "pigeon forge",
    "sevierville", "knoxville", "johnson city",
    # Other
    "atlanta", "hudson falls",
]

ZIP_NAMES = {
    "28801": "Downtown",
    "28802": "Downtown (PO)",
    "28803": "South Asheville",
    "28804": "North Asheville",
    "28805": "East Asheville",
    "28806": "West Asheville",
    "28810": "Asheville (PO)",
    "28813": "Asheville (PO)",
    "28814": "Asheville (PO)",
    "28815": "Asheville (PO)",
    "28816": "Asheville (PO)",
    "28711": "Black Mountain",
    "28715": "Candler",
    "28730": "Fairview",
    "28732": "Fletcher",
    "28739": "Hendersonville",
    "28748": "Leicester",
    "28778": "Swannanoa",
    "28787": "Weaverville",
    "28704": "Arden",
    "28731": "Flat Rock",
    "28759": "Mills River",
    "28792": "Hendersonville",
}


@dataclass
class Gazetteer:
    """Curated place names for one home region."""

    home_city: str = "Asheville"
    home_venues: list[str] = field(default_factory=lambda: list(HOME_VENUES))
    known_cities: list[str] = field(default_factory=lambda: list(KNOWN_CITIES))
    excluded_cities: list[str] = field(default_factory=lambda: list(EXCLUDED_CITIES))
    home_zip_prefix: str = "288"
    zip_names: dict[str, str] = field(default_factory=lambda: dict(ZIP_NAMES))

    def extract_city(self, location: Optional[str]) -> Optional[str]:
        """
        Extract a city name from a location string.

        Returns the city if recognized, "Online" for online events, or None
        for unknown and out-of-region locations.
        """
        if not location:
            return None

        lower = location.lower().strip()
        if lower == "online":
            return ONLINE

        if self.is_home_venue(location):
            return self.home_city

        if any(city in lower for city in self.excluded_cities):
            return None

        for city in self.known_cities:
            if city.lower() in lower:
                return city

        return None

    def is_home_venue(self, location: Optional[str]) -> bool:
        if not location:
            return False
        lower = location.lower().strip()
        return any(venue in lower for venue in self.home_venues)

    def is_home_area(self, location: Optional[str]) -> bool:
        """Home city, or an unrecognized location at a known home venue."""
        city = self.extract_city(location)
        if city == self.home_city:
            return True
        if city is None:
            return self.is_home_venue(location)
        return False

    def is_home_zip(self, zip_code: Optional[str]) -> bool:
        if not zip_code:
            return False
        return zip_code.startswith(self.home_zip_prefix)

    def zip_name(self, zip_code: str) -> str:
        return self.zip_names.get(zip_code, zip_code)


DEFAULT_GAZETTEER = Gazetteer()


def extract_city(location: Optional[str]) -> Optional[str]:
    return DEFAULT_GAZETTEER.extract_city(location)
