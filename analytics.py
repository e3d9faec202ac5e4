"""Differential-privacy analytics with per-election epsilon accounting."""

import logging
import math
import threading
from typing import Dict, Optional

from capabilities import NoiseMechanism
from errors import BudgetExceeded, InvalidDelta, InvalidEpsilon, MissingField
from schemas import DPQuery, is_blank

logger = logging.getLogger(__name__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class DPAnalyticsBudgetTracker:
    """
    Answers histogram queries with noise and tracks epsilon spent per election.

    Spend composes additively and never decreases. The check against the
    budget and the update happen under one lock, so concurrent queries on the
    same election cannot overspend.
    """

    def __init__(self, mechanism: NoiseMechanism, max_budget: float = 1.0):
        self.mechanism = mechanism
        self.max_budget = max_budget
        self._spent: Dict[str, float] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._spent)

    def spent(self, election_id) -> float:
        with self._lock:
            return self._spent.get(str(election_id), 0)

    def remaining(self, election_id) -> float:
        return self.max_budget - self.spent(election_id)

    def query(self, election_id, query: Optional[DPQuery], epsilon, delta) -> dict:
        if is_blank(election_id) or query is None or is_blank(query.type) or is_blank(query.dimension) \
                or is_blank(query.buckets):
            raise MissingField("election_id and valid query parameters are required")
        if not _is_number(epsilon) or epsilon <= 0:
            raise InvalidEpsilon("epsilon must be a positive number")
        if not _is_number(delta) or delta < 0 or delta > 1:
            raise InvalidDelta("delta must be between 0 and 1")

        key = str(election_id)
        with self._lock:
            current = self._spent.get(key, 0)
            if current + epsilon > self.max_budget:
                logger.warning("DP budget exhausted for election %s (spent %s, asked %s)", election_id, current, epsilon)
                raise BudgetExceeded("Differential privacy budget exceeded for this election")
            histogram = self.mechanism.histogram(query.buckets, epsilon, delta)
            self._spent[key] = current + epsilon
            remaining = self.max_budget - self._spent[key]

        logger.info("DP query on election %s spent epsilon %s, %s left", election_id, epsilon, remaining)
        return {
            "election_id": election_id,
            "query_type": query.type,
            "dimension": query.dimension,
            "histogram": histogram,
            "epsilon_used": epsilon,
            "delta_used": delta,
            "remaining_budget": remaining,
        }
