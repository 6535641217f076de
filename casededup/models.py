"""
Deduplication domain models.

Python attributes are snake_case; the JSON wire form (inputs, results and
audit snapshots) uses the camelCase aliases consumed by the calling UI.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .normalize import blank_to_none, normalize_national_id

# Order here is the order identity fields appear in snapshots and CLI output.
IDENTITY_FIELDS = (
    "name",
    "national_id",
    "secondary_national_id",
    "phone",
    "email",
    "bank_account_number",
)


class WireModel(BaseModel):
    """Base for models exchanged with callers as camelCase JSON"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class DecisionType(str, Enum):
    CREATE_NEW = "CREATE_NEW"
    USE_EXISTING = "USE_EXISTING"
    MERGE_CASES = "MERGE_CASES"

    @property
    def requires_selection(self) -> bool:
        return self in (DecisionType.USE_EXISTING, DecisionType.MERGE_CASES)


class DeduplicationCriteria(WireModel):
    """Partial identity information to search for"""
    name: Optional[str] = None
    national_id: Optional[str] = None
    secondary_national_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    bank_account_number: Optional[str] = None

    @field_validator(*IDENTITY_FIELDS, mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, (str, int)):
            return blank_to_none(value)
        return value

    @field_validator("national_id")
    @classmethod
    def _normalize_national_id(cls, value):
        return normalize_national_id(value) if value else value

    def present_fields(self) -> List[str]:
        """Names of the identity fields that carry a value."""
        return [f for f in IDENTITY_FIELDS if getattr(self, f) is not None]

    def is_empty(self) -> bool:
        return not self.present_fields()

    def to_snapshot(self) -> Dict[str, Any]:
        """Serialized form stored in audit entries (supplied fields only)."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class CandidateCase(WireModel):
    """A previously stored case returned by candidate search"""
    id: str
    case_reference: Optional[str] = None
    name: Optional[str] = None
    national_id: Optional[str] = None
    secondary_national_id: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    bank_account_number: Optional[str] = None
    status: Optional[str] = None
    created_at: datetime
    owner_name: Optional[str] = None


class ScoredMatch(CandidateCase):
    """Candidate annotated with the fields that matched and its confidence score"""
    matched_fields: List[str] = Field(default_factory=list)
    score: int = 0


class DeduplicationResult(WireModel):
    """Ranked candidates for one search; returned to the caller only"""
    matches: List[ScoredMatch] = Field(default_factory=list, alias="duplicatesFound")
    criteria: DeduplicationCriteria = Field(alias="searchCriteria")
    total_matches: int = 0


class DeduplicationDecision(WireModel):
    """Decision submitted by an operator or calling workflow"""
    case_id: str
    decision: DecisionType
    rationale: Optional[str] = None
    selected_existing_case_id: Optional[str] = None

    @field_validator("case_id", "selected_existing_case_id", mode="before")
    @classmethod
    def _id_to_str(cls, value):
        if isinstance(value, (str, int)):
            return blank_to_none(value)
        return value


class AuditEntry(WireModel):
    """Immutable record of a decision and the evidence shown for it"""
    model_config = ConfigDict(frozen=True)

    id: int
    case_id: str
    search_criteria_snapshot: Dict[str, Any]
    candidates_snapshot: List[Dict[str, Any]]
    decision: DecisionType
    rationale: str
    performed_by: str
    performed_at: datetime
