"""
Schemas for the election administration API

Each Pydantic model is either a record owned by one of the in-memory stores
or the body of an incoming request.

Records:
- Voter, Candidate, Vote: the authoritative vote ledger.
- EncryptedBallot, RankedBallot: extension ballot stores.
- HomomorphicTally, AuditPlan: derived records kept for later retrieval.

Timestamps are stored as aware UTC datetimes and rendered the way browsers
render them (millisecond precision, trailing Z).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, field_serializer

ElectionKey = Union[int, str]
# JSON numbers only; strings and booleans are refused rather than coerced
StrictNumber = Union[StrictInt, StrictFloat]


def is_blank(value: Any) -> bool:
    """Absent in the sense of a falsy JSON value: null, false, 0, NaN, "" and empty containers."""
    if value is None or value is False or value == "" or value == [] or value == {}:
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return False


def parse_id(value: Any) -> Optional[int]:
    """Integer id from a path or query string, None if it is not one."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def utc_now() -> datetime:
    # millisecond precision, so a rendered timestamp parses back to the same instant
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or date-time; naive values are read as UTC.

    Returns None when the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --------- Ledger records ---------

class Voter(BaseModel):
    voter_id: int = Field(..., description="Registry key")
    name: str = Field(..., description="Full name")
    age: int = Field(..., description="Age in years, 18 or older")
    has_voted: bool = Field(False)
    profile_updated: bool = Field(False, exclude=True, description="Doubles the weight of weighted vote receipts")


class Candidate(BaseModel):
    candidate_id: int = Field(..., description="Registry key")
    name: str
    party: str
    votes: int = Field(0, ge=0)


class Vote(BaseModel):
    vote_id: int
    voter_id: int
    candidate_id: int
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class WeightedVoteReceipt(BaseModel):
    vote_id: int = Field(..., description="Disposable receipt number, never persisted")
    voter_id: int
    candidate_id: Optional[int] = None
    weight: int


# --------- Extension records ---------

class EncryptedBallot(BaseModel):
    ballot_id: str
    status: str = Field("accepted")
    nullifier: str
    anchored_at: datetime
    election_id: ElectionKey = Field(..., exclude=True)

    @field_serializer("anchored_at")
    def _serialize_anchored_at(self, value: datetime) -> str:
        return format_timestamp(value)


class CandidateTally(BaseModel):
    candidate_id: int
    votes: int


class Transparency(BaseModel):
    ballot_merkle_root: str
    tally_method: str
    threshold: str


class HomomorphicTally(BaseModel):
    election_id: ElectionKey
    encrypted_tally_root: str
    candidate_tallies: List[CandidateTally] = Field(default_factory=list)
    decryption_proof: str
    transparency: Transparency


class RankedBallot(BaseModel):
    ballot_id: str
    election_id: ElectionKey
    voter_id: ElectionKey
    ranking: List[Any]
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class AuditPlan(BaseModel):
    audit_id: str
    initial_sample_size: int = Field(..., ge=0)
    sampling_plan: str = Field(..., description="base64 of the stratification JSON")
    test: str = Field("kaplan-markov")
    status: str = Field("planned")
    election_id: ElectionKey = Field(..., exclude=True)


# --------- Requests ---------

class VoterCreateRequest(BaseModel):
    voter_id: Optional[int] = None
    name: Optional[str] = None
    age: Optional[int] = None


class VoterUpdateRequest(BaseModel):
    name: Optional[str] = None
    age: Optional[int] = None


class CandidateCreateRequest(BaseModel):
    candidate_id: Optional[int] = None
    name: Optional[str] = None
    party: Optional[str] = None


class CastVoteRequest(BaseModel):
    voter_id: Optional[int] = None
    candidate_id: Optional[int] = None


class EncryptedBallotRequest(BaseModel):
    election_id: Optional[ElectionKey] = None
    ciphertext: Optional[str] = None
    zk_proof: Optional[Any] = None
    voter_pubkey: Optional[str] = None
    nullifier: Optional[str] = None
    signature: Optional[str] = None


class TrusteeShare(BaseModel):
    trustee_id: Optional[ElectionKey] = None
    share: Optional[Any] = None
    proof: Optional[Any] = None


class HomomorphicTallyRequest(BaseModel):
    election_id: Optional[ElectionKey] = None
    trustee_decrypt_shares: Optional[List[TrusteeShare]] = None


class DPQuery(BaseModel):
    type: Optional[str] = None
    dimension: Optional[str] = None
    buckets: Optional[List[str]] = None


class DPQueryRequest(BaseModel):
    election_id: Optional[ElectionKey] = None
    query: Optional[DPQuery] = None
    epsilon: Optional[StrictNumber] = None
    delta: Optional[StrictNumber] = None


class RankedBallotRequest(BaseModel):
    election_id: Optional[ElectionKey] = None
    voter_id: Optional[ElectionKey] = None
    ranking: Optional[List[Any]] = None
    timestamp: Optional[str] = None


class ReportedTally(BaseModel):
    candidate_id: Optional[ElectionKey] = None
    votes: Optional[int] = None


class AuditPlanRequest(BaseModel):
    election_id: Optional[ElectionKey] = None
    reported_tallies: Optional[List[ReportedTally]] = None
    risk_limit_alpha: Optional[StrictNumber] = None
    audit_type: Optional[str] = None
    stratification: Optional[Dict[str, Any]] = None
