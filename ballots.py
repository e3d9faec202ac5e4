"""Extension ballot stores: anonymous encrypted ballots and ranked ballots."""

import itertools
import logging
import threading
from typing import Any, Dict, List, Optional, Set, Tuple

from capabilities import ProofVerifier, sha256_hex
from errors import DuplicateBallot, DuplicateNullifier, InvalidProof, InvalidTimestamp, MissingField
from schemas import EncryptedBallot, RankedBallot, is_blank, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


class EncryptedBallotVault:
    """
    Accepts anonymous encrypted ballots.

    No voter identity is checked: the nullifier is the only double-vote guard,
    and it is unique across every election. Nullifier lookup and insertion
    happen under one lock so two submissions carrying the same nullifier
    cannot both be accepted.
    """

    def __init__(self, verifier: ProofVerifier):
        self.verifier = verifier
        self._ballots: Dict[str, EncryptedBallot] = {}
        self._nullifiers: Set[str] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._ballots)

    def submit(self, election_id, ciphertext, zk_proof, voter_pubkey, nullifier, signature) -> EncryptedBallot:
        fields = (election_id, ciphertext, zk_proof, voter_pubkey, nullifier, signature)
        if any(is_blank(f) for f in fields):
            raise MissingField("All fields are required")

        with self._lock:
            if nullifier in self._nullifiers:
                logger.warning("Rejected ballot with spent nullifier for election %s", election_id)
                raise DuplicateNullifier("duplicate nullifier: ballot already submitted")

            if not self.verifier.verify(ciphertext, zk_proof, voter_pubkey, nullifier, signature):
                logger.warning("Rejected ballot with invalid proof for election %s", election_id)
                raise InvalidProof("invalid zk proof")

            # nullifiers are unique, so the derived id is too
            ballot = EncryptedBallot(
                ballot_id="b_" + sha256_hex(nullifier)[:32],
                nullifier=nullifier,
                anchored_at=utc_now(),
                election_id=election_id,
            )
            self._nullifiers.add(nullifier)
            self._ballots[ballot.ballot_id] = ballot
            logger.info("Accepted encrypted ballot %s for election %s", ballot.ballot_id, election_id)
            return ballot.model_copy()

    def ballot_ids(self, election_id) -> List[str]:
        with self._lock:
            return sorted(b.ballot_id for b in self._ballots.values() if str(b.election_id) == str(election_id))

    def commitment(self, election_id) -> str:
        """Hash chain over the sorted ids of the election's accepted ballots."""
        root = sha256_hex(f"election:{election_id}")
        for ballot_id in self.ballot_ids(election_id):
            root = sha256_hex(root + ballot_id)
        return "0x" + root


class RankedBallotStore:
    """One ranked ballot per (election_id, voter_id).

    Rankings are stored exactly as submitted. Nothing tallies them yet.
    """

    def __init__(self):
        self._ballots: Dict[Tuple[str, str], RankedBallot] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._ballots)

    @staticmethod
    def _key(election_id, voter_id) -> Tuple[str, str]:
        return str(election_id), str(voter_id)

    def submit(self, election_id, voter_id, ranking: Optional[List[Any]], timestamp) -> RankedBallot:
        if is_blank(election_id) or is_blank(voter_id) or is_blank(ranking):
            raise MissingField("election_id, voter_id, and valid ranking array are required")
        submitted_at = parse_timestamp(timestamp)
        if submitted_at is None:
            raise InvalidTimestamp("invalid timestamp format")

        key = self._key(election_id, voter_id)
        with self._lock:
            if key in self._ballots:
                raise DuplicateBallot(
                    f"voter with id: {voter_id} has already submitted a ranked ballot for election {election_id}"
                )
            ballot = RankedBallot(
                ballot_id=f"rb_{next(self._ids)}",
                election_id=election_id,
                voter_id=voter_id,
                ranking=list(ranking),
                timestamp=submitted_at,
            )
            self._ballots[key] = ballot
            logger.info("Stored ranked ballot %s for election %s", ballot.ballot_id, election_id)
            return ballot.model_copy()

    def get(self, election_id, voter_id) -> Optional[RankedBallot]:
        with self._lock:
            ballot = self._ballots.get(self._key(election_id, voter_id))
            return ballot.model_copy() if ballot else None
