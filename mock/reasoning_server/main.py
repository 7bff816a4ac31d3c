import json
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Reasoning Server", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/reasoning_stub") if os.path.exists("/reasoning_stub") else Path(__file__).resolve().parents[1] / "reasoning_stub"

# MOCK_FAIL_STATUS=429 or 503 makes the first MOCK_FAIL_TIMES calls fail (0 = always)
FAIL_STATUS = int(os.getenv("MOCK_FAIL_STATUS", "0"))
FAIL_TIMES = int(os.getenv("MOCK_FAIL_TIMES", "0"))
_calls = {"count": 0}


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/v1/assess")
async def assess(request: Request):
    body = await request.json()
    if "financialData" not in body:
        raise HTTPException(status_code=400, detail="financialData is required")

    _calls["count"] += 1
    if FAIL_STATUS and (FAIL_TIMES == 0 or _calls["count"] <= FAIL_TIMES):
        detail = "RESOURCE_EXHAUSTED: quota exceeded" if FAIL_STATUS == 429 else "backend unavailable"
        raise HTTPException(status_code=FAIL_STATUS, detail=detail)

    industry = body["financialData"].get("industry", "default").lower()
    file = DATA_DIR / f"assessment_{industry}.json"
    if not file.exists():
        file = DATA_DIR / "assessment_default.json"
    return JSONResponse(content=json.loads(file.read_text()))
