"""
Postcode lookup collaborator.

The journey only needs candidates for a postcode. Provider integration
(HTTP, keys, retries) lives behind AddressLookupProvider; the static
provider serves the fixture addresses used in development and tests.
"""

from typing import Dict, List, Optional

from lpa_journey.records import Address
from lpa_journey.validation import normalise_postcode


class AddressLookupError(Exception):
    """The provider could not be reached or failed."""


class InvalidPostcodeError(AddressLookupError):
    """The provider rejected the postcode."""


class AddressLookupProvider:
    """Interface for postcode lookup providers."""

    def lookup(self, postcode: str) -> List[Address]:
        raise NotImplementedError


# Provider-shaped details for the fixture postcode
FIXTURE_DETAILS = {
    'B14 7ED': [
        {'building_number': str(n), 'thoroughfare_name': 'RICHMOND PLACE',
         'dependent_locality': 'KINGS HEATH', 'town': 'BIRMINGHAM', 'postcode': 'B14 7ED'}
        for n in range(1, 8)
    ],
}


class StaticAddressLookup(AddressLookupProvider):
    """Lookup over an in-memory table of provider details."""

    def __init__(self, details: Optional[Dict[str, List[Dict[str, str]]]] = None):
        if details is None:
            details = FIXTURE_DETAILS
        self._details = {normalise_postcode(k): v for k, v in details.items()}

    def lookup(self, postcode: str) -> List[Address]:
        rows = self._details.get(normalise_postcode(postcode), [])
        return [Address.from_lookup_details(row) for row in rows]


def candidate_label(address: Address) -> str:
    """Label shown in the address select list, e.g. '4 RICHMOND PLACE, BIRMINGHAM, B14 7ED'."""
    return ', '.join(p for p in [address.line1, address.town_or_city, address.postcode] if p)
