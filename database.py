"""
In-memory stores backing one running API instance.

Every store owns its own map and lock; ElectionDatabase only wires them
together in dependency order.
"""

from typing import Optional

from analytics import DPAnalyticsBudgetTracker
from audit import AuditPlanner
from ballots import EncryptedBallotVault, RankedBallotStore
from capabilities import (
    AcceptAllProofVerifier,
    AcceptAllShareVerifier,
    LaplaceMechanism,
    NoiseMechanism,
    ProofVerifier,
    RegistryTallyAggregator,
    ShareVerifier,
    TallyAggregator,
)
from config import Settings
from ledger import BallotBox, ResultsEngine, WeightedVoteIssuer
from registry import CandidateRegistry, VoterRegistry
from tally import HomomorphicTallyService


class ElectionDatabase:
    def __init__(self, settings: Optional[Settings] = None,
                 proof_verifier: Optional[ProofVerifier] = None,
                 share_verifier: Optional[ShareVerifier] = None,
                 aggregator: Optional[TallyAggregator] = None,
                 noise: Optional[NoiseMechanism] = None):
        settings = settings or Settings()
        self.voters = VoterRegistry()
        self.candidates = CandidateRegistry()
        self.ballot_box = BallotBox(self.voters, self.candidates, first_vote_id=settings.vote_id_start)
        self.results = ResultsEngine(self.candidates, self.ballot_box)
        self.weighted = WeightedVoteIssuer(self.voters)
        self.vault = EncryptedBallotVault(proof_verifier or AcceptAllProofVerifier())
        self.tallies = HomomorphicTallyService(
            self.candidates,
            self.vault,
            share_verifier or AcceptAllShareVerifier(),
            aggregator or RegistryTallyAggregator(),
            tally_method=settings.tally_method,
            threshold=settings.trustee_threshold,
        )
        self.analytics = DPAnalyticsBudgetTracker(noise or LaplaceMechanism(), max_budget=settings.dp_max_budget)
        self.ranked = RankedBallotStore()
        self.audits = AuditPlanner(
            sample_rate=settings.audit_sample_rate,
            min_sample=settings.audit_min_sample,
            max_sample=settings.audit_max_sample,
        )

    def collection_sizes(self) -> dict:
        return {
            "voters": len(self.voters),
            "candidates": len(self.candidates),
            "votes": len(self.ballot_box),
            "encrypted_ballots": len(self.vault),
            "homomorphic_tallies": len(self.tallies),
            "dp_budgets": len(self.analytics),
            "ranked_ballots": len(self.ranked),
            "audits": len(self.audits),
        }
