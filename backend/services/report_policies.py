"""Per-state compliance report formats.

Each supported state maps to one grouping strategy and an ordered list of
optional rows the layout adds under every entry. Adding a state means adding
a row to ``POLICIES``; the layout has no state-specific branches.
"""

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, field_validator

from backend.errors import unknown_jurisdiction


# Optional rows drawn under each entry, at most two fields per row.
MAX_OPTIONAL_ROWS = 3
MAX_FIELDS_PER_ROW = 2


class GroupingStrategy(str, Enum):
    BY_CUSTOMER = "by-customer"
    BY_DATE = "by-date"


class OptionalField(str, Enum):
    METHOD = "method"
    AREA = "area"
    CONSENT = "consent"
    REENTRY = "reentry"


DEFAULT_LABELS: dict[OptionalField, str] = {
    OptionalField.METHOD: "Application Method",
    OptionalField.AREA: "Area Treated",
    OptionalField.CONSENT: "Customer Consent",
    OptionalField.REENTRY: "Re-entry Interval",
}


class JurisdictionPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    display_name: str
    grouping: GroupingStrategy
    # Each row holds a left-column field and an optional right-column field.
    optional_rows: tuple[tuple[OptionalField, ...], ...] = ()
    labels: dict[OptionalField, str] = {}

    @field_validator("optional_rows")
    @classmethod
    def _check_rows(cls, rows):
        if len(rows) > MAX_OPTIONAL_ROWS:
            raise ValueError(f"at most {MAX_OPTIONAL_ROWS} optional rows are supported")
        for row in rows:
            if not 1 <= len(row) <= MAX_FIELDS_PER_ROW:
                raise ValueError(f"optional rows hold 1 to {MAX_FIELDS_PER_ROW} fields")
        return rows

    def label_for(self, field: OptionalField) -> str:
        return self.labels.get(field, DEFAULT_LABELS[field])

    @property
    def enabled_fields(self) -> list[OptionalField]:
        return [field for row in self.optional_rows for field in row]


POLICIES: MappingProxyType = MappingProxyType(
    {
        "CA": JurisdictionPolicy(
            code="CA",
            display_name="California (DPR)",
            grouping=GroupingStrategy.BY_CUSTOMER,
        ),
        "FL": JurisdictionPolicy(
            code="FL",
            display_name="Florida (FDACS)",
            grouping=GroupingStrategy.BY_CUSTOMER,
            optional_rows=(
                (OptionalField.METHOD, OptionalField.AREA),
                (OptionalField.CONSENT,),
            ),
        ),
        "TX": JurisdictionPolicy(
            code="TX",
            display_name="Texas (TDA)",
            grouping=GroupingStrategy.BY_DATE,
            optional_rows=(
                (OptionalField.REENTRY, OptionalField.CONSENT),
                (OptionalField.AREA,),
            ),
            labels={
                OptionalField.CONSENT: "Property Owner Consent",
                OptionalField.AREA: "Area Size",
            },
        ),
    }
)


def get_policy(code: str) -> JurisdictionPolicy:
    policy = POLICIES.get(code)
    if policy is None:
        raise unknown_jurisdiction(code)
    return policy
