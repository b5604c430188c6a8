"""The "favorite filters" drop-down of the issues search page."""

from dataclasses import dataclass, field
from typing import Iterable

from issuepanel.models import IssueFilter

FAVORITE_URL = "/issues/filter"
MANAGE_URL = "/issues/manage"


@dataclass
class FavoriteFilter:
    """View model of the drop-down.

    ``choices`` maps filter id to filter name. The widget only offers links:
    it never holds a value and is never in its default state.
    """

    choices: dict[str, str] = field(default_factory=dict)
    favorite_url: str = field(default=FAVORITE_URL)
    manage_url: str = field(default=MANAGE_URL)
    base_url: str = field(default="")

    @classmethod
    def from_filters(cls, filters: Iterable[IssueFilter], base_url: str = "") -> "FavoriteFilter":
        return cls(choices={str(f.id): f.name for f in filters}, base_url=base_url)

    def choices_array(self) -> list[tuple[str, str]]:
        """(id, name) pairs sorted by name."""
        return sorted(self.choices.items(), key=lambda item: item[1])

    def apply_url(self, filter_id: object) -> str:
        return f"{self.base_url}{self.favorite_url}/{filter_id}"

    def manage_link(self) -> str:
        return f"{self.base_url}{self.manage_url}"

    def render_value(self) -> str:
        return ""

    def is_default_value(self) -> bool:
        return False
