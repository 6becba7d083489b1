# api/server.py
from __future__ import annotations
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from config import DEFAULT_DATA_DIR, DEFAULT_NODE_ID, DEFAULT_LOG_LEVEL, LOG_FORMAT
from core.crypto import generate_keypair, hash_public_key
from core.errors import CallError, InvalidCall, InvalidSignature, InvalidNonce, InvalidCandidate
from core.node import LedgerNode
from network.schemas import (
    SignedCall,
    CallResponse,
    ElectionResponse,
    CandidateResponse,
    ResultsResponse,
    VoterResponse,
    InfoResponse,
    StatsResponse,
)

logger = logging.getLogger(__name__)

# HTTP status for each boundary rejection
CALL_ERROR_STATUS = {
    InvalidCall.code: 400,
    InvalidSignature.code: 401,
    InvalidNonce.code: 409,
}


def node_from_env() -> LedgerNode:
    """
    Build the node from environment, so several nodes can run side by side.
    LEDGER_ADMIN is only needed the first time, before a journal exists.
    """
    return LedgerNode(
        node_id=os.getenv("NODE_ID", DEFAULT_NODE_ID),
        data_dir=os.getenv("LEDGER_DATA_DIR", DEFAULT_DATA_DIR),
        administrator=os.getenv("LEDGER_ADMIN") or None,
    )


def create_app(node: Optional[LedgerNode] = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.node is None:
            # served by uvicorn on its own; configure logging for the process
            logging.basicConfig(level=os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL), format=LOG_FORMAT)
            app.state.node = node_from_env()
        current = app.state.node
        logger.info(f"[{current.node_id}] Serving ledger {current.journal.ledger_id[:16]}...")
        yield
        logger.info(f"[{current.node_id}] Shutting down.")

    app = FastAPI(title="Election Ledger", lifespan=lifespan)
    app.state.node = node

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_node(request: Request) -> LedgerNode:
        return request.app.state.node

    @app.get("/health")
    def health(request: Request) -> Dict[str, str]:
        return {"status": "ok", "node_id": get_node(request).node_id}

    @app.get("/info", response_model=InfoResponse)
    def get_info(request: Request) -> InfoResponse:
        return InfoResponse(**get_node(request).get_info())

    @app.get("/stats", response_model=StatsResponse)
    def get_stats(request: Request) -> StatsResponse:
        return StatsResponse(**get_node(request).get_stats())

    @app.get("/generate_keys")
    def generate_keys() -> Dict[str, str]:
        """
        Generate a new RSA keypair and the identity it maps to.
        Development helper; real clients generate keys locally.
        """
        private_key, public_key = generate_keypair()
        return {
            "private_key": private_key,
            "public_key": public_key,
            "identity": hash_public_key(public_key),
        }

    @app.get("/election", response_model=ElectionResponse)
    def get_election(request: Request) -> ElectionResponse:
        return ElectionResponse(**get_node(request).get_election())

    @app.get("/candidates/{index}", response_model=CandidateResponse)
    def get_candidate(index: int, request: Request) -> CandidateResponse:
        try:
            candidate = get_node(request).get_candidate(index)
        except InvalidCandidate as e:
            raise HTTPException(status_code=404, detail=e.code)
        return CandidateResponse(**candidate)

    @app.get("/results", response_model=ResultsResponse)
    def get_results(request: Request) -> ResultsResponse:
        return ResultsResponse(**get_node(request).get_results())

    @app.get("/voters/{identity}", response_model=VoterResponse)
    def get_voter(identity: str, request: Request) -> VoterResponse:
        return VoterResponse(**get_node(request).get_voter(identity))

    @app.get("/events")
    def get_events(request: Request, since: int = Query(0, ge=0)) -> List[Dict[str, Any]]:
        return get_node(request).get_events(since)

    @app.get("/journal")
    def get_journal(request: Request) -> List[Dict[str, Any]]:
        return get_node(request).get_journal_view()

    @app.get("/validate")
    def validate_journal(request: Request) -> Dict[str, Any]:
        """
        check if the journal is currently valid.
        """
        return {"valid": get_node(request).is_journal_valid()}

    @app.post("/call", response_model=CallResponse)
    def submit_call(call: SignedCall, request: Request) -> CallResponse:
        """
        Submit a signed, state-changing call.

        A call the ledger rejects still comes back 200 with ok=false and the
        error code; only calls that never reach the ledger get an error status.
        """
        try:
            receipt = get_node(request).submit(
                action=call.action,
                args=call.args,
                nonce=call.nonce,
                public_key=call.public_key,
                signature=call.signature,
            )
        except CallError as e:
            raise HTTPException(status_code=CALL_ERROR_STATUS.get(e.code, 400), detail=e.code)
        return CallResponse(**receipt.to_dict())

    return app


app = create_app()
