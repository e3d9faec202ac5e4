"""Risk-limiting audit planning."""

import base64
import itertools
import json
import logging
import math
import threading
from typing import Any, Dict, List, Optional

from errors import InvalidAlpha, MissingField, NotFound, UnsupportedAuditType
from schemas import AuditPlan, ReportedTally, is_blank

logger = logging.getLogger(__name__)

SUPPORTED_AUDIT_TYPES = ("ballot_polling",)


def encode_sampling_plan(stratification: Optional[Dict[str, Any]]) -> str:
    payload = json.dumps(stratification or {}, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


class AuditPlanner:
    """
    Sizes the first round of a ballot-polling audit.

    The sample size is a fixed share of the reported votes clamped to
    [min_sample, max_sample]. The plan names the Kaplan-Markov test but the
    sequential test itself is not run here.
    """

    def __init__(self, sample_rate: float = 0.03, min_sample: int = 100, max_sample: int = 5000):
        self.sample_rate = sample_rate
        self.min_sample = min_sample
        self.max_sample = max_sample
        self._plans: Dict[str, AuditPlan] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._plans)

    def sample_size(self, total_votes: int) -> int:
        return min(max(int(total_votes * self.sample_rate), self.min_sample), self.max_sample)

    def plan(self, election_id, reported_tallies: Optional[List[ReportedTally]], risk_limit_alpha,
             audit_type: Optional[str], stratification: Optional[Dict[str, Any]] = None) -> AuditPlan:
        if is_blank(election_id) or not reported_tallies:
            raise MissingField("election_id and reported_tallies are required")
        if not isinstance(risk_limit_alpha, (int, float)) or isinstance(risk_limit_alpha, bool) \
                or not math.isfinite(risk_limit_alpha) or not 0 < risk_limit_alpha < 1:
            raise InvalidAlpha("risk_limit_alpha must be a number between 0 and 1")
        if audit_type not in SUPPORTED_AUDIT_TYPES:
            raise UnsupportedAuditType("unsupported audit_type; only 'ballot_polling' supported")

        total_votes = sum(t.votes or 0 for t in reported_tallies)
        with self._lock:
            plan = AuditPlan(
                audit_id=f"rla_{next(self._ids)}",
                initial_sample_size=self.sample_size(total_votes),
                sampling_plan=encode_sampling_plan(stratification),
                election_id=election_id,
            )
            self._plans[plan.audit_id] = plan
        logger.info("Planned audit %s for election %s: %d of %d ballots",
                    plan.audit_id, election_id, plan.initial_sample_size, total_votes)
        return plan.model_copy()

    def get(self, audit_id: str) -> AuditPlan:
        with self._lock:
            plan = self._plans.get(audit_id)
            if plan is None:
                raise NotFound(f"audit with id: {audit_id} was not found")
            return plan.model_copy()
