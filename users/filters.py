# users/filters.py
"""
Admin user search.

A UserQuery is built from request query params and turned into a single
``Q``: the free-text search is OR'd over the text columns, every status
filter is AND'd on top.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from django.db.models import Q

from core.exceptions import InvalidInput

TEXT_FIELDS = [
    "nickname",
    "email",
    "participant_id",
    "profile__name",
    "profile__school",
    "profile__homeCountry",
    "travel_from_country",
    "profile__travelFromCity",
    "most_interesting_track",
    "applied_reimbursement_class",
]

# Each flag maps to the conditions it requires. Flags combine with AND.
STATUS_FILTERS = {
    "verified": Q(verified=True, completed_profile=False, rejected=False),
    "submitted": Q(completed_profile=True, soft_admitted=False, rejected=False),
    "soft_admitted": Q(soft_admitted=True, admitted=False, confirmed=False, rejected=False),
    "admitted": Q(admitted=True, confirmed=False, rejected=False),
    "confirmed": Q(confirmed=True, rejected=False),
    "declined": Q(declined=True),
    "accepted_to_terminal": Q(terminal_accepted=True),
    "needs_reimbursement": Q(needs_reimbursement=True, rejected=False),
    "needs_visa": Q(needs_visa=True, rejected=False),
    "rejected": Q(rejected=True),
    "waitlist": Q(waitlist=True),
    "checked_in": Q(checked_in=True),
    "rated": Q(rating__gt=0),
    "not_rated": Q(rating=0),
    "teams": Q(team__isnull=False),
    "individuals": Q(team__isnull=True),
    "terminal": ~Q(terminal_essay=""),
    "special_registration": Q(special_registration=True),
}

SORT_FIELDS = {
    "date": "date_joined",
    "last_updated": "last_updated",
    "rating": "rating",
    "team": "team",
    "email": "email",
    "nickname": "nickname",
}

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def _truthy(value) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


def _int_param(params, name, default):
    raw = params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f"'{name}' must be an integer.")


@dataclass
class UserQuery:
    text: str = ""
    statuses: List[str] = field(default_factory=list)
    rated: Optional[int] = None
    requested_class: str = ""
    accepted_class: str = ""
    sort_by: str = "date"
    descending: bool = False
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(cls, params):
        """Build from a QueryDict (or any mapping) of request params."""
        query = cls(
            text=(params.get("text") or "").strip(),
            statuses=[name for name in STATUS_FILTERS if _truthy(params.get(name, ""))],
            requested_class=params.get("requested_class") or "",
            accepted_class=params.get("accepted_class") or "",
            sort_by=params.get("sort_by") or "date",
            descending=_truthy(params.get("sort_desc", "")),
            page=_int_param(params, "page", 0),
            size=_int_param(params, "size", DEFAULT_PAGE_SIZE),
        )

        stars = params.get("rated_stars")
        if stars not in (None, ""):
            query.rated = _int_param(params, "rated_stars", 0)

        query.validate()
        return query

    def validate(self):
        if self.page < 0:
            raise InvalidInput("'page' must not be negative.")
        if not 1 <= self.size <= MAX_PAGE_SIZE:
            raise InvalidInput(f"'size' must be between 1 and {MAX_PAGE_SIZE}.")
        if self.sort_by not in SORT_FIELDS:
            raise InvalidInput(f"Can not sort by '{self.sort_by}'.")
        if self.rated is not None and not 0 <= self.rated <= 5:
            raise InvalidInput("'rated_stars' must be between 0 and 5.")
        unknown = [s for s in self.statuses if s not in STATUS_FILTERS]
        if unknown:
            raise InvalidInput(f"Unknown status filter: {', '.join(unknown)}")

    def to_q(self) -> Q:
        q = Q()

        if self.text:
            text_q = Q()
            for name in TEXT_FIELDS:
                text_q |= Q(**{f"{name}__icontains": self.text})
            q &= text_q

        for name in self.statuses:
            q &= STATUS_FILTERS[name]

        if self.rated is not None:
            q &= Q(rating=self.rated)
        if self.requested_class:
            q &= Q(applied_reimbursement_class=self.requested_class, needs_reimbursement=True)
        if self.accepted_class:
            q &= Q(accepted_reimbursement_class=self.accepted_class)

        return q

    def ordering(self) -> str:
        column = SORT_FIELDS[self.sort_by]
        return f"-{column}" if self.descending else column

    def apply(self, queryset):
        return queryset.filter(self.to_q()).order_by(self.ordering(), "pk")
