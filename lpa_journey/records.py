"""
Record types held in the LPA document.

Records are stored in the document as plain dicts; these dataclasses
give them shape at the edges (form parsing, display, PDF rendering).
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Any, Optional


@dataclass
class Address:
    """Structured postal address."""
    line1: str = ''
    line2: str = ''
    line3: str = ''
    town_or_city: str = ''
    postcode: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, str]]) -> 'Address':
        if not data:
            return cls()
        return cls(
            line1=data.get('line1', ''),
            line2=data.get('line2', ''),
            line3=data.get('line3', ''),
            town_or_city=data.get('town_or_city', ''),
            postcode=data.get('postcode', '')
        )

    @classmethod
    def from_lookup_details(cls, details: Dict[str, str]) -> 'Address':
        """
        Build an address from a postcode lookup result.

        A building name takes the first line and pushes the street down;
        otherwise the first line is "<number> <thoroughfare>".

        Args:
            details: Provider fields (building_name, building_number,
                thoroughfare_name, dependent_locality, town, postcode)

        Returns:
            The structured Address
        """
        building_name = details.get('building_name', '')
        building_number = details.get('building_number', '')
        thoroughfare = details.get('thoroughfare_name', '')
        locality = details.get('dependent_locality', '')

        address = cls(town_or_city=details.get('town', ''), postcode=details.get('postcode', ''))

        if building_name:
            address.line1 = building_name
            if building_number:
                address.line2 = f'{building_number} {thoroughfare}'
            else:
                address.line2 = thoroughfare
            address.line3 = locality
        else:
            address.line1 = f'{building_number} {thoroughfare}'.strip()
            address.line2 = locality

        return address

    @classmethod
    def decode(cls, value: str) -> Optional['Address']:
        """Decode an address from its select-option value; None if malformed."""
        try:
            data = json.loads(value)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict):
            return None
        return cls.from_dict(data)

    def encode(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def is_complete(self) -> bool:
        return bool(self.line1 and self.town_or_city and self.postcode)

    def to_single_line(self) -> str:
        parts = [p for p in [self.line1, self.line2, self.line3, self.town_or_city, self.postcode] if p]
        return ', '.join(parts)

    def to_summary_line(self) -> str:
        """First line and postcode, as shown on summary pages."""
        return ', '.join(p for p in [self.line1, self.postcode] if p)


@dataclass
class Attorney:
    """An attorney or replacement attorney."""
    id: str = ''
    first_names: str = ''
    last_name: str = ''
    email: str = ''
    date_of_birth: Optional[str] = None
    address: Address = field(default_factory=Address)

    # Fields every attorney must have for its section to be complete
    REQUIRED_FIELDS = ('first_names', 'last_name', 'date_of_birth')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attorney':
        if not data:
            return cls()
        return cls(
            id=data.get('id', ''),
            first_names=data.get('first_names', ''),
            last_name=data.get('last_name', ''),
            email=data.get('email', ''),
            date_of_birth=data.get('date_of_birth'),
            address=Address.from_dict(data.get('address'))
        )

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in [self.first_names, self.last_name] if p)

    def is_complete(self) -> bool:
        if any(not getattr(self, name) for name in self.REQUIRED_FIELDS):
            return False
        return self.address.is_complete()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'first_names': self.first_names,
            'last_name': self.last_name,
            'email': self.email,
            'date_of_birth': self.date_of_birth,
            'address': self.address.to_dict()
        }


@dataclass
class Donor:
    """The person making the LPA."""
    first_names: str = ''
    last_name: str = ''
    other_names: str = ''
    date_of_birth: Optional[str] = None
    address: Address = field(default_factory=Address)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Donor':
        if not data:
            return cls()
        return cls(
            first_names=data.get('first_names', ''),
            last_name=data.get('last_name', ''),
            other_names=data.get('other_names', ''),
            date_of_birth=data.get('date_of_birth'),
            address=Address.from_dict(data.get('address'))
        )

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in [self.first_names, self.last_name] if p)


@dataclass
class PersonToNotify:
    """Someone the donor wants told when the LPA is registered."""
    id: str = ''
    first_names: str = ''
    last_name: str = ''
    email: str = ''
    address: Address = field(default_factory=Address)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PersonToNotify':
        if not data:
            return cls()
        return cls(
            id=data.get('id', ''),
            first_names=data.get('first_names', ''),
            last_name=data.get('last_name', ''),
            email=data.get('email', ''),
            address=Address.from_dict(data.get('address'))
        )

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in [self.first_names, self.last_name] if p)

    def is_complete(self) -> bool:
        return bool(self.first_names and self.last_name) and self.address.is_complete()


@dataclass
class CertificateProvider:
    """The person certifying the donor understands the LPA."""
    first_names: str = ''
    last_name: str = ''
    email: str = ''
    mobile: str = ''
    relationship: str = ''
    relationship_description: str = ''
    relationship_length: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CertificateProvider':
        if not data:
            return cls()
        return cls(
            first_names=data.get('first_names', ''),
            last_name=data.get('last_name', ''),
            email=data.get('email', ''),
            mobile=data.get('mobile', ''),
            relationship=data.get('relationship', ''),
            relationship_description=data.get('relationship_description', ''),
            relationship_length=data.get('relationship_length', '')
        )

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in [self.first_names, self.last_name] if p)

    @property
    def is_professional(self) -> bool:
        return self.relationship in ('health-professional', 'legal-professional')

    def is_complete(self) -> bool:
        """Named, reachable and known to the donor well enough to certify."""
        if not (self.first_names and self.last_name and self.mobile and self.relationship):
            return False
        return self.is_professional or bool(self.relationship_length)


def attorneys_from_records(records: List[Dict[str, Any]]) -> List[Attorney]:
    return [Attorney.from_dict(r) for r in records]


def people_to_notify_from_records(records: List[Dict[str, Any]]) -> List[PersonToNotify]:
    return [PersonToNotify.from_dict(r) for r in records]
