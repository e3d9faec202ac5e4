"""
Runtime configuration for the election API.

Values are read from environment variables (prefix ELECTION_) with defaults
matching the reference deployment.
"""

import os
from typing import List

from pydantic import BaseModel, Field


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseModel):
    title: str = Field("Election Administration API")
    log_level: str = Field("INFO")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    vote_id_start: int = Field(101, description="First id handed out by the ballot box")
    dp_max_budget: float = Field(1.0, description="Total epsilon spendable per election")
    audit_sample_rate: float = Field(0.03, description="Share of reported votes in the initial RLA sample")
    audit_min_sample: int = Field(100)
    audit_max_sample: int = Field(5000)
    tally_method: str = Field("threshold_paillier")
    trustee_threshold: str = Field("3-of-5")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            title=os.getenv("ELECTION_API_TITLE", "Election Administration API"),
            log_level=os.getenv("ELECTION_LOG_LEVEL", "INFO"),
            cors_origins=_split_csv(os.getenv("ELECTION_CORS_ORIGINS", "*")),
            vote_id_start=int(os.getenv("ELECTION_VOTE_ID_START", "101")),
            dp_max_budget=float(os.getenv("ELECTION_DP_MAX_BUDGET", "1.0")),
            audit_sample_rate=float(os.getenv("ELECTION_AUDIT_SAMPLE_RATE", "0.03")),
            audit_min_sample=int(os.getenv("ELECTION_AUDIT_MIN_SAMPLE", "100")),
            audit_max_sample=int(os.getenv("ELECTION_AUDIT_MAX_SAMPLE", "5000")),
            tally_method=os.getenv("ELECTION_TALLY_METHOD", "threshold_paillier"),
            trustee_threshold=os.getenv("ELECTION_TRUSTEE_THRESHOLD", "3-of-5"),
        )
