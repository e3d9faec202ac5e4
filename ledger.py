"""The authoritative vote ledger and the views computed from it."""

import itertools
import logging
import secrets
import threading
from operator import attrgetter
from typing import Dict, List, Optional

from errors import AlreadyVoted, InvalidInput, InvalidInterval, MissingField, NotFound
from registry import CandidateRegistry, VoterRegistry
from schemas import Vote, WeightedVoteReceipt, format_timestamp, is_blank, parse_id, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class BallotBox:
    """Casts standard votes, at most one per voter.

    The whole check / flag / increment / persist sequence runs under one lock
    so two concurrent casts for the same voter cannot both succeed.
    """

    def __init__(self, voters: VoterRegistry, candidates: CandidateRegistry, first_vote_id: int = 101):
        self.voters = voters
        self.candidates = candidates
        self._votes: Dict[int, Vote] = {}
        self._ids = itertools.count(first_vote_id)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._votes)

    def cast(self, voter_id: Optional[int], candidate_id: Optional[int]) -> Vote:
        if is_blank(voter_id) or is_blank(candidate_id):
            raise MissingField("voter_id and candidate_id are required", 409)
        with self._lock:
            voter = self.voters.get(voter_id)
            if voter.has_voted:
                logger.warning("Rejected second vote from voter %s", voter_id)
                raise AlreadyVoted(f"voter with id: {voter_id} has already voted")
            if candidate_id not in self.candidates:
                raise NotFound(f"candidate with id: {candidate_id} was not found", 409)

            vote = Vote(vote_id=next(self._ids), voter_id=voter_id, candidate_id=candidate_id, timestamp=utc_now())
            self.voters.mark_voted(voter_id)
            self.candidates.increment(candidate_id)
            self._votes[vote.vote_id] = vote
            logger.info("Vote %s cast by voter %s for candidate %s", vote.vote_id, voter_id, candidate_id)
            return vote.model_copy()

    def votes(self) -> List[Vote]:
        """Copies of all votes in allocation order."""
        with self._lock:
            return [v.model_copy() for v in self._votes.values()]


class ResultsEngine:
    def __init__(self, candidates: CandidateRegistry, ballot_box: BallotBox):
        self.candidates = candidates
        self.ballot_box = ballot_box

    def results(self) -> List[dict]:
        # sorted() is stable, ties keep registration order
        ranked = sorted(self.candidates.snapshot(), key=attrgetter("votes"), reverse=True)
        return [c.model_dump(include={"candidate_id", "name", "votes"}) for c in ranked]

    def winner(self) -> List[dict]:
        everyone = self.candidates.snapshot()
        if not everyone:
            raise NotFound("No candidates found")
        top = max(c.votes for c in everyone)
        return [c.model_dump(include={"candidate_id", "name", "votes"}) for c in everyone if c.votes == top]

    def _votes_for(self, candidate_id: Optional[int]) -> List[Vote]:
        if candidate_id is None or candidate_id not in self.candidates:
            raise NotFound(f"candidate with id: {candidate_id} was not found")
        return [v for v in self.ballot_box.votes() if v.candidate_id == candidate_id]

    def timeline(self, candidate_id: Optional[int]) -> List[dict]:
        return [v.model_dump(include={"vote_id", "timestamp"}) for v in self._votes_for(candidate_id)]

    def range_count(self, candidate_id: Optional[int], start: Optional[str], end: Optional[str]) -> dict:
        """Count a candidate's votes cast within the closed interval [start, end]."""
        votes = self._votes_for(candidate_id)
        lower, upper = parse_timestamp(start), parse_timestamp(end)
        if lower is None or upper is None:
            raise InvalidInput("Invalid date format")
        if lower > upper:
            raise InvalidInterval("invalid interval: from > to")
        gained = sum(1 for v in votes if lower <= v.timestamp <= upper)
        return {
            "candidate_id": candidate_id,
            "from": format_timestamp(lower),
            "to": format_timestamp(upper),
            "votes_gained": gained,
        }


class WeightedVoteIssuer:
    """Issues weighted vote receipts.

    Receipts are disposable: the vote_id is random, nothing is stored and the
    ballot box counter is never touched.
    """

    def __init__(self, voters: VoterRegistry):
        self.voters = voters

    def issue(self, voter_id, candidate_id) -> WeightedVoteReceipt:
        if is_blank(voter_id) or is_blank(candidate_id):
            raise MissingField("voter_id and candidate_id are required", 400)
        key = parse_id(voter_id)
        try:
            voter = self.voters.get(key)
        except NotFound:
            raise NotFound(f"Voter with id: {voter_id} not found", 404) from None
        weight = 2 if voter.profile_updated else 1
        return WeightedVoteReceipt(
            vote_id=secrets.randbelow(1000) + 200,
            voter_id=voter.voter_id,
            candidate_id=parse_id(candidate_id),
            weight=weight,
        )
