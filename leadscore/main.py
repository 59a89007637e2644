import asyncio
import io
import json
import logging
import time
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple
import pandas as pd
from fastapi import Body, Depends, FastAPI, File, HTTPException, Request, Response, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from .ai_scoring import OpenAIChatGenerator, TextGenerator, fallback_result, get_ai_score
from .config import load_rules, save_rules, settings
from .models import AIScoreResult, BulkRequest, BulkResponse, Lead, LeadAIScore, LeadIn, LeadScore, ScoredLead, Summary
from .normalizer import clean_str, normalize_status
from .scoring import compute_score, score_one
from .store import LeadNotFound, LeadStore, LeadValidationError


app = FastAPI(title="Lead Management + Scoring API")


logger = logging.getLogger("leadscore")
logging.basicConfig(level=settings.LOG_LEVEL, format="%(message)s")


store = LeadStore()


def get_store() -> LeadStore:
    return store


def get_generator() -> TextGenerator:
    return OpenAIChatGenerator()


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(int(time.time() * 1000))
    start = time.time()
    response: Optional[Response] = None
    try:
        response = await call_next(request)
    finally:
        duration_ms = int((time.time() - start) * 1000)
        logger.info(json.dumps({
            "request_id": rid,
            "endpoint": request.url.path,
            "method": request.method,
            "status": response.status_code if response is not None else 500,
            "latency_ms": duration_ms,
        }))
    response.headers["X-Request-ID"] = rid
    return response


@app.exception_handler(LeadValidationError)
async def lead_validation_handler(request: Request, exc: LeadValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": "Invalid lead data", "errors": exc.errors})


@app.exception_handler(LeadNotFound)
async def lead_not_found_handler(request: Request, exc: LeadNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Lead not found"})


@app.get("/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


@app.get("/")
def root() -> Dict[str, str]:
    return {"name": "Lead Management + Scoring API", "status": "running", "docs_url": "/docs"}


@app.get("/config/rules")
def get_rules() -> Dict[str, Any]:
    return load_rules()


@app.put("/config/rules")
def put_rules(body: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    try:
        return save_rules(body)
    except Exception as e:
        raise HTTPException(status_code=422, detail=str(e))


async def ai_score_with_timeout(lead: Any, generator: TextGenerator) -> AIScoreResult:
    try:
        return await asyncio.wait_for(get_ai_score(lead, generator), timeout=settings.AI_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(json.dumps({"event": "ai_score_timeout", "timeout_s": settings.AI_TIMEOUT_SECONDS}))
        return fallback_result()


@app.get("/leads", response_model=List[Lead])
def list_leads(status: Optional[str] = None, leads: LeadStore = Depends(get_store)) -> List[Lead]:
    return leads.list(status=status)


@app.post("/leads", response_model=Lead, status_code=201)
def create_lead(lead: LeadIn, leads: LeadStore = Depends(get_store)) -> Lead:
    return leads.create(lead)


def _export_frame(rows: List[Lead]) -> pd.DataFrame:
    columns = ["id", "name", "email", "company", "status", "score", "created_at", "updated_at"]
    records = [{**r.model_dump(), "score": score_one(r)} for r in rows]
    return pd.DataFrame(records, columns=columns)


@app.get("/leads/export")
def export_leads(status: Optional[str] = None, leads: LeadStore = Depends(get_store)) -> StreamingResponse:
    df = _export_frame(leads.list(status=status))
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    buf.seek(0)
    headers = {"Content-Disposition": f"attachment; filename=leads_{int(time.time())}.csv"}
    return StreamingResponse(iter([buf.getvalue()]), media_type="text/csv", headers=headers)


@app.get("/leads/{lead_id}", response_model=Lead)
def get_lead(lead_id: str, leads: LeadStore = Depends(get_store)) -> Lead:
    return leads.get(lead_id)


@app.put("/leads/{lead_id}", response_model=Lead)
def update_lead(lead_id: str, lead: LeadIn, leads: LeadStore = Depends(get_store)) -> Lead:
    return leads.update(lead_id, lead)


@app.delete("/leads/{lead_id}")
def delete_lead(lead_id: str, leads: LeadStore = Depends(get_store)) -> Dict[str, str]:
    leads.delete(lead_id)
    return {"message": "Lead deleted successfully"}


@app.get("/leads/{lead_id}/score", response_model=LeadScore)
def score_lead(lead_id: str, leads: LeadStore = Depends(get_store)) -> LeadScore:
    lead = leads.get(lead_id)
    return LeadScore(lead_id=lead.id, score=score_one(lead))


@app.get("/leads/{lead_id}/ai-score", response_model=LeadAIScore)
async def ai_score_lead(
    lead_id: str,
    leads: LeadStore = Depends(get_store),
    generator: TextGenerator = Depends(get_generator),
) -> LeadAIScore:
    lead = leads.get(lead_id)
    result = await ai_score_with_timeout(lead, generator)
    return LeadAIScore(lead_id=lead.id, **result.model_dump())


@app.post("/score", response_model=ScoredLead)
def score_endpoint(lead: LeadIn) -> ScoredLead:
    return ScoredLead(**lead.model_dump(), score=score_one(lead))


@app.post("/score/ai", response_model=AIScoreResult)
async def ai_score_endpoint(lead: LeadIn, generator: TextGenerator = Depends(get_generator)) -> AIScoreResult:
    return await ai_score_with_timeout(lead, generator)


def bulk_process(leads: List[LeadIn]) -> Tuple[List[ScoredLead], Dict[str, Any]]:
    rules = load_rules()
    results = [ScoredLead(**l.model_dump(), score=compute_score(l, rules)) for l in leads]
    count_out = len(results)
    avg_score = round(sum(r.score for r in results) / count_out, 2) if count_out else 0.0
    summary = {
        "count_in": len(leads),
        "count_out": count_out,
        "avg_score": avg_score,
        "by_status": dict(Counter(r.status for r in results)),
    }
    return results, summary


@app.post("/bulk", response_model=BulkResponse)
def bulk_endpoint(req: BulkRequest) -> BulkResponse:
    results, summary = bulk_process(req.leads)
    return BulkResponse(results=results, summary=Summary.model_validate(summary))


def _coerce_lead_rows(df: pd.DataFrame, column_map: Optional[Dict[str, str]] = None) -> List[LeadIn]:
    expected = {
        "name": "Name",
        "email": "Email",
        "company": "Company",
        "status": "Status",
    }
    mapping = {k: v for k, v in expected.items()}
    if column_map:
        for k in expected.keys():
            if k in column_map:
                mapping[k] = column_map[k]
    leads: List[LeadIn] = []
    for _, row in df.iterrows():
        payload = {}
        for key, col in mapping.items():
            payload[key] = None if col not in df.columns else (None if pd.isna(row.get(col)) else str(row.get(col)))
        payload["status"] = normalize_status(payload["status"]) or "new"
        payload["email"] = clean_str(payload["email"])
        leads.append(LeadIn(**payload))
    return leads


@app.post("/ingest_csv", response_model=BulkResponse)
async def ingest_csv(file: UploadFile = File(...), column_map: Optional[str] = None) -> BulkResponse:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Expected a CSV file")
    content = await file.read()
    try:
        df = pd.read_csv(io.BytesIO(content))
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid CSV")
    cm: Optional[Dict[str, str]] = None
    if column_map:
        try:
            cm = json.loads(column_map)
        except Exception:
            raise HTTPException(status_code=400, detail="column_map must be JSON string")
        if not isinstance(cm, dict):
            raise HTTPException(status_code=400, detail="column_map must be a JSON object")
    leads = _coerce_lead_rows(df, cm)
    results, summary = bulk_process(leads)
    return BulkResponse(results=results, summary=Summary.model_validate(summary))
