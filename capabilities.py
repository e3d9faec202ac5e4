"""
Pluggable cryptographic and statistical capabilities.

The stores call these interfaces and trust their answers. The classes shipped
here are placeholders for development deployments: they accept every proof
and aggregate from the plaintext candidate registry. Production deployments
pass real implementations to ``main.create_app``.
"""

import hashlib
import json
import math
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from schemas import Candidate, CandidateTally, TrusteeShare


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class ProofVerifier(Protocol):
    def verify(self, ciphertext: str, zk_proof: Any, voter_pubkey: str, nullifier: str, signature: str) -> bool:
        ...


class ShareVerifier(Protocol):
    def verify_share(self, election_id: Any, share: TrusteeShare) -> bool:
        ...


class TallyAggregator(Protocol):
    def aggregate(self, election_id: Any, shares: Sequence[TrusteeShare],
                  candidates: Sequence[Candidate]) -> "AggregateResult":
        ...


class NoiseMechanism(Protocol):
    def histogram(self, buckets: Sequence[str], epsilon: float, delta: float) -> Dict[str, int]:
        ...


@dataclass
class AggregateResult:
    encrypted_tally_root: str
    candidate_tallies: List[CandidateTally]
    decryption_proof: str


# --------- Placeholder implementations ---------

class AcceptAllProofVerifier:
    """Accepts every ballot proof. Integrate a real ZK verifier in production."""

    def verify(self, ciphertext, zk_proof, voter_pubkey, nullifier, signature) -> bool:
        return True


class AcceptAllShareVerifier:
    def verify_share(self, election_id, share) -> bool:
        return True


class RegistryTallyAggregator:
    """Stands in for ciphertext aggregation by reading the plaintext registry counts."""

    DECRYPTION_PROOF = "base64(batch_proof_linking_cipher_aggregate_to_plain_counts)"

    def aggregate(self, election_id, shares, candidates) -> AggregateResult:
        digest_input = json.dumps(
            {"election_id": election_id, "shares": [s.model_dump(mode="json") for s in shares]},
            sort_keys=True,
        )
        tallies = [CandidateTally(candidate_id=c.candidate_id, votes=c.votes) for c in candidates]
        return AggregateResult(
            encrypted_tally_root="0x" + sha256_hex(digest_input),
            candidate_tallies=tallies,
            decryption_proof=self.DECRYPTION_PROOF,
        )


class LaplaceMechanism:
    """Laplace noise on bucket counts with sensitivity 1.

    ``counts`` maps a bucket to its true count; when absent every bucket is
    treated as empty. Noisy counts are rounded and floored at zero. ``delta`` is
    accepted for interface compatibility; pure epsilon-DP ignores it.
    """

    def __init__(self, counts: Optional[Callable[[str], int]] = None, sensitivity: float = 1.0,
                 rng: Optional[random.Random] = None):
        self.counts = counts
        self.sensitivity = sensitivity
        self.rng = rng or random.SystemRandom()

    def laplace_noise(self, epsilon: float) -> float:
        scale = self.sensitivity / epsilon
        # difference of two exponentials is Laplace(0, scale)
        return self.rng.expovariate(1 / scale) - self.rng.expovariate(1 / scale)

    def histogram(self, buckets, epsilon, delta) -> Dict[str, int]:
        noisy = {}
        for bucket in buckets:
            true_count = self.counts(bucket) if self.counts else 0
            noisy[bucket] = max(0, int(math.floor(true_count + self.laplace_noise(epsilon) + 0.5)))
        return noisy
