import logging
from typing import Dict, List, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from audit_engine.api.deps import get_bridge_transport, get_history_store, get_settings
from audit_engine.api.history import router as history_router
from audit_engine.config import Settings
from audit_engine.core.engine import scan_page
from audit_engine.core.errors import (
    ERROR_CODES,
    AuditEngineError,
    AuditExecutionFailed,
    BatchFailed,
    ErrorDetails,
    PersistenceWriteFailure,
    describe_error,
)
from audit_engine.core.executor import PageContext
from audit_engine.core.remediation import remediation_for, supported_rules
from audit_engine.core.scoring import score, score_breakdown, score_from_summary
from audit_engine.core.storage import HistoryStore
from audit_engine.models.schemas import (
    ElementLocation,
    Finding,
    Remediation,
    ScanRequest,
    ScanResponse,
    ScoreResult,
    Summary,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Page Audit Engine API", version="0.4.0")

origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/scan", response_model=ScanResponse)
async def start_scan(
    req: ScanRequest,
    settings: Settings = Depends(get_settings),
    store: HistoryStore = Depends(get_history_store),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_bridge_transport),
):
    context = PageContext(url=req.url, tab_id=req.tab_id)
    try:
        outcome = await scan_page(context, req.audit_types, settings=settings, transport=transport)
    except (BatchFailed, AuditExecutionFailed) as e:
        raise HTTPException(status_code=502, detail=describe_error(e).model_dump())
    except AuditEngineError as e:
        raise HTTPException(status_code=400, detail=describe_error(e).model_dump())

    if outcome.result is None:
        return ScanResponse()

    response = ScanResponse(
        result=outcome.result,
        score=score(outcome.result.findings),
        warning=str(outcome.error) if outcome.error else None,
    )
    if req.save:
        try:
            response.entry = await store.save(outcome.result, req.audit_types)
        except PersistenceWriteFailure as e:
            logger.error("Scan of %s was not saved: %s", req.url, e)
            note = f"Scan was not saved to history: {e}"
            response.warning = f"{response.warning}; {note}" if response.warning else note
    return response


# ---------- Scoring

@app.post("/score", response_model=ScoreResult)
def score_findings(findings: List[Finding]):
    return score(findings)


@app.post("/score/summary", response_model=ScoreResult)
def score_summary(summary: Summary):
    return score_from_summary(summary)


@app.post("/score/breakdown", response_model=Dict[str, ScoreResult])
def score_by_category(findings: List[Finding]):
    return score_breakdown(findings)


# ---------- Reference data

@app.get("/rules", response_model=List[str])
def list_rules():
    return supported_rules()


@app.post("/rules/{rule_id}/remediation", response_model=Remediation)
def rule_remediation(rule_id: str, location: ElementLocation):
    return remediation_for(rule_id, location)


@app.get("/errors/{code}", response_model=ErrorDetails)
def error_details(code: str):
    details = ERROR_CODES.get(code.upper())
    if details is None:
        raise HTTPException(status_code=404, detail=f"Unknown error code {code}")
    return details


app.include_router(history_router)
