"""Homomorphic tally records built from trustee decryption shares."""

import logging
import threading
from typing import Dict, List, Optional

from ballots import EncryptedBallotVault
from capabilities import ShareVerifier, TallyAggregator
from errors import InvalidShareProof, MalformedShare, MissingField, NotFound
from registry import CandidateRegistry
from schemas import HomomorphicTally, TrusteeShare, Transparency, is_blank

logger = logging.getLogger(__name__)


class HomomorphicTallyService:
    def __init__(self, candidates: CandidateRegistry, vault: EncryptedBallotVault,
                 share_verifier: ShareVerifier, aggregator: TallyAggregator,
                 tally_method: str = "threshold_paillier", threshold: str = "3-of-5"):
        self.candidates = candidates
        self.vault = vault
        self.share_verifier = share_verifier
        self.aggregator = aggregator
        self.tally_method = tally_method
        self.threshold = threshold
        self._tallies: Dict[str, HomomorphicTally] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tallies)

    def aggregate(self, election_id, shares: Optional[List[TrusteeShare]]) -> HomomorphicTally:
        if is_blank(election_id) or not shares:
            raise MissingField("election_id and trustee_decrypt_shares are required")

        for share in shares:
            if is_blank(share.trustee_id) or is_blank(share.share) or is_blank(share.proof):
                raise MalformedShare("Each trustee share must have trustee_id, share, and proof")
            if not self.share_verifier.verify_share(election_id, share):
                logger.warning("Share proof from trustee %s rejected for election %s", share.trustee_id, election_id)
                raise InvalidShareProof(f"invalid decryption proof from trustee: {share.trustee_id}")

        result = self.aggregator.aggregate(election_id, shares, self.candidates.snapshot())
        tally = HomomorphicTally(
            election_id=election_id,
            encrypted_tally_root=result.encrypted_tally_root,
            candidate_tallies=result.candidate_tallies,
            decryption_proof=result.decryption_proof,
            transparency=Transparency(
                ballot_merkle_root=self.vault.commitment(election_id),
                tally_method=self.tally_method,
                threshold=self.threshold,
            ),
        )
        with self._lock:
            self._tallies[str(election_id)] = tally
        logger.info("Aggregated %d trustee shares for election %s", len(shares), election_id)
        return tally.model_copy(deep=True)

    def get(self, election_id) -> HomomorphicTally:
        with self._lock:
            tally = self._tallies.get(str(election_id))
            if tally is None:
                raise NotFound(f"no homomorphic tally for election: {election_id}")
            return tally.model_copy(deep=True)
