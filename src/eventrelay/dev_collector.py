from __future__ import annotations

import os
import time
from collections import Counter, deque
from typing import Any, Deque, Dict

from fastapi import FastAPI, Request
from pydantic import BaseModel

from eventrelay.payloads import Payment, Topology, TrustLine
from eventrelay.router import PAYMENT_ENDPOINT, TOPOLOGY_ENDPOINT, TRUSTLINE_ENDPOINT
from eventrelay.uploader import LOG_ENDPOINT

# ----------------------------
# Config
# ----------------------------
MAX_RECEIVED = int(os.getenv("RELAY_DEV_MAX_RECEIVED", "1000"))

# ----------------------------
# App
# ----------------------------
app = FastAPI(title="eventrelay dev collector")

# ----------------------------
# Storage
# ----------------------------
RECEIVED: Deque[Dict[str, Any]] = deque(maxlen=MAX_RECEIVED)
COUNTS: Counter = Counter()


def _record(method: str, path: str, body: Any) -> Dict[str, Any]:
    item = {"ts": time.time(), "method": method, "path": path, "body": body}
    RECEIVED.append(item)
    COUNTS[f"{method} {path}"] += 1
    return item

def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)

def reset() -> None:
    RECEIVED.clear()
    COUNTS.clear()


# ----------------------------
# Routes: collector API
# ----------------------------
@app.post(TOPOLOGY_ENDPOINT)
def post_topology(topology: Topology):
    _record("POST", TOPOLOGY_ENDPOINT, _dump(topology))
    return {"ok": True}

@app.post(TRUSTLINE_ENDPOINT)
def post_trustline(trustline: TrustLine):
    _record("POST", TRUSTLINE_ENDPOINT, _dump(trustline))
    return {"ok": True}

@app.delete(TRUSTLINE_ENDPOINT)
def delete_trustline(trustline: TrustLine):
    _record("DELETE", TRUSTLINE_ENDPOINT, _dump(trustline))
    return {"ok": True}

@app.post(PAYMENT_ENDPOINT)
def post_payment(payment: Payment):
    _record("POST", PAYMENT_ENDPOINT, _dump(payment))
    return {"ok": True}

@app.post(LOG_ENDPOINT)
async def post_log(request: Request):
    # multipart body is kept opaque; only its size is recorded
    body = await request.body()
    _record("POST", LOG_ENDPOINT, {"bytes": len(body), "content_type": request.headers.get("content-type")})
    return {"ok": True}


# ----------------------------
# Routes: inspection
# ----------------------------
@app.get("/received")
def received(limit: int = 100):
    return {"count": len(RECEIVED), "items": list(reversed(RECEIVED))[:limit]}

@app.get("/metrics")
def metrics():
    return {"total": sum(COUNTS.values()), "by_endpoint": dict(COUNTS)}
