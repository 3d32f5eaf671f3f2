"""
Sport references.

Clients send a sport either as a display name (``"Table Tennis"``) or as a
keyed object (``{"key": "table_tennis", "name": "Table Tennis"}``). Both are
parsed into a ``SportRef`` and every comparison goes through
``normalize_sport``.
"""
import re
from typing import Mapping, NamedTuple, Optional, Union

from utils.errors import ValidationError

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_sport(text) -> str:
    return _SEPARATORS.sub("", str(text or "")).lower()


class SportName(NamedTuple):
    name: str

    @property
    def key(self) -> str:
        return normalize_sport(self.name)


class KeyedSport(NamedTuple):
    key: str
    name: str


SportRef = Union[SportName, KeyedSport]


def parse_sport(value) -> SportRef:
    if isinstance(value, (SportName, KeyedSport)):
        return value
    if isinstance(value, str):
        name = value.strip()
        if not name:
            raise ValidationError("sport is required")
        return SportName(name)
    if isinstance(value, Mapping):
        key = str(value.get("key") or "").strip()
        name = str(value.get("name") or "").strip()
        if not key and not name:
            raise ValidationError("sport object needs a key or a name")
        return KeyedSport(key or normalize_sport(name), name or key)
    raise ValidationError("sport must be a name or an object with key/name")


def _forms(ref: SportRef) -> set:
    return {normalize_sport(ref.key), normalize_sport(ref.name)}


def sport_matches(ref, other) -> bool:
    return bool(_forms(parse_sport(ref)) & _forms(parse_sport(other)))


def supports_sport(sports, target) -> bool:
    """True if any entry of a venue/sub-venue ``sports`` list is ``target``."""
    target = parse_sport(target)
    for entry in sports or []:
        try:
            if sport_matches(entry, target):
                return True
        except ValidationError:
            continue
    return False


def price_for_sport(prices: Optional[Mapping], sport) -> Optional[int]:
    """Look a slot price up by sport key, display name or normalised form."""
    if not prices:
        return None
    ref = parse_sport(sport)
    for exact in (ref.key, ref.name):
        if exact in prices:
            return prices[exact]

    wanted = _forms(ref)
    for label, price in prices.items():
        if normalize_sport(label) in wanted:
            return price
    return None
