import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from capabilities import NoiseMechanism, ProofVerifier, ShareVerifier, TallyAggregator
from config import Settings
from database import ElectionDatabase
from errors import ElectionError
from schemas import (
    AuditPlanRequest,
    CandidateCreateRequest,
    CastVoteRequest,
    DPQueryRequest,
    EncryptedBallotRequest,
    HomomorphicTallyRequest,
    RankedBallotRequest,
    VoterCreateRequest,
    VoterUpdateRequest,
    parse_id,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_db(request: Request) -> ElectionDatabase:
    return request.app.state.db


@router.get("/")
def root():
    return {"message": "Election API running"}


@router.get("/health")
def health(db: ElectionDatabase = Depends(get_db)):
    return {"backend": "running", "collections": db.collection_sizes()}


# --------- Voters ---------

@router.post("/api/voters", status_code=218)
def register_voter(payload: VoterCreateRequest, db: ElectionDatabase = Depends(get_db)):
    return db.voters.register(payload.voter_id, payload.name, payload.age)


@router.get("/api/voters/{voter_id}", status_code=222)
def get_voter(voter_id: str, db: ElectionDatabase = Depends(get_db)):
    return db.voters.get(parse_id(voter_id))


@router.get("/api/voters", status_code=223)
def list_voters(db: ElectionDatabase = Depends(get_db)):
    return {"voters": db.voters.list()}


@router.put("/api/voters/{voter_id}", status_code=200)
def update_voter(voter_id: str, payload: VoterUpdateRequest, db: ElectionDatabase = Depends(get_db)):
    return db.voters.update(parse_id(voter_id), name=payload.name, age=payload.age)


@router.delete("/api/voters/{voter_id}", status_code=225)
def delete_voter(voter_id: str, db: ElectionDatabase = Depends(get_db)):
    key = parse_id(voter_id)
    db.voters.delete(key)
    return {"message": f"voter with id: {key} deleted successfully"}


# --------- Candidates ---------

@router.post("/api/candidates", status_code=226)
def register_candidate(payload: CandidateCreateRequest, db: ElectionDatabase = Depends(get_db)):
    return db.candidates.register(payload.candidate_id, payload.name, payload.party)


@router.get("/api/candidates")
def list_candidates(response: Response, party: Optional[str] = None, db: ElectionDatabase = Depends(get_db)):
    response.status_code = 230 if party else 227
    return {"candidates": db.candidates.list(party)}


@router.get("/api/candidates/{candidate_id}/votes", status_code=229)
def candidate_votes(candidate_id: str, db: ElectionDatabase = Depends(get_db)):
    key = parse_id(candidate_id)
    return {"candidate_id": key, "votes": db.candidates.vote_count(key)}


# --------- Voting ---------

@router.post("/api/votes", status_code=228)
def cast_vote(payload: CastVoteRequest, db: ElectionDatabase = Depends(get_db)):
    return db.ballot_box.cast(payload.voter_id, payload.candidate_id)


@router.get("/api/votes/timeline", status_code=233)
def vote_timeline(candidate_id: Optional[str] = None, db: ElectionDatabase = Depends(get_db)):
    key = parse_id(candidate_id)
    return {"candidate_id": key, "timeline": db.results.timeline(key)}


@router.post("/api/votes/weighted", status_code=234)
def weighted_vote(voter_id: Optional[str] = None, candidate_id: Optional[str] = None,
                  db: ElectionDatabase = Depends(get_db)):
    return db.weighted.issue(voter_id, candidate_id)


@router.get("/api/votes/range", status_code=235)
def vote_range(candidate_id: Optional[str] = None,
               start: Optional[str] = Query(None, alias="from"),
               end: Optional[str] = Query(None, alias="to"),
               db: ElectionDatabase = Depends(get_db)):
    return db.results.range_count(parse_id(candidate_id), start, end)


# --------- Results ---------

@router.get("/api/results", status_code=231)
def results(db: ElectionDatabase = Depends(get_db)):
    return {"results": db.results.results()}


@router.get("/api/results/winner", status_code=232)
def winner(db: ElectionDatabase = Depends(get_db)):
    return {"winners": db.results.winner()}


@router.post("/api/results/homomorphic", status_code=237)
def homomorphic_tally(payload: HomomorphicTallyRequest, db: ElectionDatabase = Depends(get_db)):
    return db.tallies.aggregate(payload.election_id, payload.trustee_decrypt_shares)


@router.get("/api/results/homomorphic/{election_id}", status_code=200)
def get_homomorphic_tally(election_id: str, db: ElectionDatabase = Depends(get_db)):
    return db.tallies.get(election_id)


# --------- Extension ballots ---------

@router.post("/api/ballots/encrypted", status_code=236)
def submit_encrypted_ballot(payload: EncryptedBallotRequest, db: ElectionDatabase = Depends(get_db)):
    return db.vault.submit(
        payload.election_id,
        payload.ciphertext,
        payload.zk_proof,
        payload.voter_pubkey,
        payload.nullifier,
        payload.signature,
    )


@router.post("/api/ballots/ranked", status_code=200)
def submit_ranked_ballot(payload: RankedBallotRequest, db: ElectionDatabase = Depends(get_db)):
    ballot = db.ranked.submit(payload.election_id, payload.voter_id, payload.ranking, payload.timestamp)
    return {"ballot_id": ballot.ballot_id, "status": "accepted"}


# --------- Analytics & audits ---------

@router.post("/api/analytics/dp", status_code=200)
def dp_query(payload: DPQueryRequest, db: ElectionDatabase = Depends(get_db)):
    return db.analytics.query(payload.election_id, payload.query, payload.epsilon, payload.delta)


@router.get("/api/analytics/dp/{election_id}/budget", status_code=200)
def dp_budget(election_id: str, db: ElectionDatabase = Depends(get_db)):
    return {
        "election_id": election_id,
        "spent": db.analytics.spent(election_id),
        "remaining_budget": db.analytics.remaining(election_id),
    }


@router.post("/api/audits/plan", status_code=240)
def plan_audit(payload: AuditPlanRequest, db: ElectionDatabase = Depends(get_db)):
    return db.audits.plan(
        payload.election_id,
        payload.reported_tallies,
        payload.risk_limit_alpha,
        payload.audit_type,
        payload.stratification,
    )


@router.get("/api/audits/{audit_id}", status_code=200)
def get_audit(audit_id: str, db: ElectionDatabase = Depends(get_db)):
    return db.audits.get(audit_id)


# --------- Errors ---------

def _message(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def election_error_handler(request: Request, exc: ElectionError):
    return _message(exc.message, exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        return _message(f"Route {request.method} {url} not found", 404)
    return _message(str(exc.detail), exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        message = "invalid request"
    return _message(message, 400)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _message("Something went wrong", 500)


def create_app(settings: Optional[Settings] = None,
               proof_verifier: Optional[ProofVerifier] = None,
               share_verifier: Optional[ShareVerifier] = None,
               aggregator: Optional[TallyAggregator] = None,
               noise: Optional[NoiseMechanism] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    application = FastAPI(title=settings.title)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.settings = settings
    application.state.db = ElectionDatabase(
        settings,
        proof_verifier=proof_verifier,
        share_verifier=share_verifier,
        aggregator=aggregator,
        noise=noise,
    )
    application.add_exception_handler(ElectionError, election_error_handler)
    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)
    application.include_router(router)
    return application


app = create_app()
