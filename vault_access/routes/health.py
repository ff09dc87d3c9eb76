# vault_access/routes/health.py
"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vault_access.dependencies import get_store
from vault_access.storage.kv_store import KeyValueStore

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "vault-access"}


@router.get("/readyz")
async def readyz(store: KeyValueStore = Depends(get_store)):
    """Readiness check against the key-value store."""
    checks = {}

    t0 = time.time()
    try:
        store_ok = bool(await store.ping())
        checks["store"] = {"ok": store_ok, "latency_ms": round((time.time() - t0) * 1000, 1)}
    except Exception as e:
        store_ok = False
        checks["store"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}

    body = {"overall_ok": store_ok, "checks": checks}
    return JSONResponse(status_code=200 if store_ok else 503, content=body)
