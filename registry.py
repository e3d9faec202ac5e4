"""Voter and candidate registries.

Each registry owns its map exclusively and hands out copies, so callers never
observe a record while another thread is half way through changing it.
"""

import logging
import threading
from typing import Dict, List, Optional

from errors import (
    AlreadyVoted,
    DuplicateCandidate,
    DuplicateVoter,
    InvalidAge,
    MissingField,
    NotFound,
)
from schemas import Candidate, Voter, is_blank

logger = logging.getLogger(__name__)

MINIMUM_AGE = 18


class VoterRegistry:
    def __init__(self):
        self._voters: Dict[int, Voter] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._voters)

    def register(self, voter_id: Optional[int], name: Optional[str], age: Optional[int],
                 profile_updated: bool = False) -> Voter:
        if is_blank(voter_id) or is_blank(name) or age is None:
            raise MissingField("voter_id, name, and age are required", 409)
        if age < MINIMUM_AGE:
            raise InvalidAge("voter must be at least 18 years old", 409)
        with self._lock:
            if voter_id in self._voters:
                raise DuplicateVoter(f"voter with id: {voter_id} already exists")
            voter = Voter(voter_id=voter_id, name=name, age=age, profile_updated=profile_updated)
            self._voters[voter_id] = voter
            logger.info("Registered voter %s", voter_id)
            return voter.model_copy()

    def get(self, voter_id: Optional[int]) -> Voter:
        with self._lock:
            voter = self._voters.get(voter_id)
            if voter is None:
                raise NotFound(f"voter with id: {voter_id} was not found")
            return voter.model_copy()

    def list(self) -> List[dict]:
        with self._lock:
            return [v.model_dump(include={"voter_id", "name", "age"}) for v in self._voters.values()]

    def update(self, voter_id: Optional[int], name: Optional[str] = None, age: Optional[int] = None) -> Voter:
        with self._lock:
            voter = self._voters.get(voter_id)
            if voter is None:
                raise NotFound(f"voter with id: {voter_id} was not found")
            if age is not None and age < MINIMUM_AGE:
                raise InvalidAge(f"invalid age: {age}, must be 18 or older", 417)
            if name is not None:
                voter.name = name
            if age is not None:
                voter.age = age
            return voter.model_copy()

    def delete(self, voter_id: Optional[int]) -> None:
        with self._lock:
            if voter_id not in self._voters:
                raise NotFound(f"voter with id: {voter_id} was not found")
            del self._voters[voter_id]
            logger.info("Deleted voter %s", voter_id)

    def mark_voted(self, voter_id: int) -> Voter:
        """Flip has_voted for an existing voter, refusing a second flip."""
        with self._lock:
            voter = self._voters.get(voter_id)
            if voter is None:
                raise NotFound(f"voter with id: {voter_id} was not found")
            if voter.has_voted:
                raise AlreadyVoted(f"voter with id: {voter_id} has already voted")
            voter.has_voted = True
            return voter.model_copy()


class CandidateRegistry:
    def __init__(self):
        self._candidates: Dict[int, Candidate] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._candidates)

    def __contains__(self, candidate_id) -> bool:
        with self._lock:
            return candidate_id in self._candidates

    def register(self, candidate_id: Optional[int], name: Optional[str], party: Optional[str]) -> Candidate:
        if is_blank(candidate_id) or is_blank(name) or is_blank(party):
            raise MissingField("candidate_id, name, and party are required", 409)
        with self._lock:
            if candidate_id in self._candidates:
                raise DuplicateCandidate(f"candidate with id: {candidate_id} already exists")
            candidate = Candidate(candidate_id=candidate_id, name=name, party=party)
            self._candidates[candidate_id] = candidate
            logger.info("Registered candidate %s (%s)", candidate_id, party)
            return candidate.model_copy()

    def get(self, candidate_id: Optional[int]) -> Candidate:
        with self._lock:
            candidate = self._candidates.get(candidate_id)
            if candidate is None:
                raise NotFound(f"candidate with id: {candidate_id} was not found")
            return candidate.model_copy()

    def list(self, party: Optional[str] = None) -> List[dict]:
        wanted = party.lower() if party else None
        with self._lock:
            return [
                c.model_dump(include={"candidate_id", "name", "party"})
                for c in self._candidates.values()
                if wanted is None or c.party.lower() == wanted
            ]

    def vote_count(self, candidate_id: Optional[int]) -> int:
        return self.get(candidate_id).votes

    def snapshot(self) -> List[Candidate]:
        """Copies of every candidate in registration order."""
        with self._lock:
            return [c.model_copy() for c in self._candidates.values()]

    def increment(self, candidate_id: int) -> Candidate:
        with self._lock:
            candidate = self._candidates.get(candidate_id)
            if candidate is None:
                raise NotFound(f"candidate with id: {candidate_id} was not found", 409)
            candidate.votes += 1
            return candidate.model_copy()
