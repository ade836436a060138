"""Stored Analyses — list, inspect, delete, export and import the Analysis Store.

Invariants:
    - Export is the whole store as one JSON object keyed by metaphor
    - Import accepts the raw JSON body, validates it field-by-field, then merges
      (incoming keys win); a bad file is a 400 IMPORT_VALIDATION_ERROR
    - Deleting a metaphor resets every workspace that was showing it

Design Decisions:
    - Raw body import over multipart upload: no form-parsing dependency, and the
      client already holds the file contents
    - Export filename carries an ISO timestamp so repeated downloads never collide
    - {metaphor:path}: metaphor text may contain "/" ("Input/output is a pipe")
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from metaphornik.api.dependencies import get_registry, get_store
from metaphornik.core.errors import ResourceNotFoundError
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.workspace_registry import WorkspaceRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/analyses", tags=["analyses"])


@router.get("")
async def list_analyses(store: AnalysisStore = Depends(get_store)):
    """Summaries of every stored metaphor, newest first."""
    records = sorted(store.all().values(), key=lambda r: r.timestamp, reverse=True)
    return {
        "analyses": [
            {
                "metaphor": r.metaphor,
                "timestamp": r.timestamp,
                "perspectives": len(r.analysis.mapping_sets),
                "explored": len(r.explored_perspectives),
                "comparisons": len(r.comparisons or []),
            }
            for r in records
        ],
    }


@router.get("/export")
async def export_analyses(store: AnalysisStore = Depends(get_store)):
    """Download the whole store as a JSON file."""
    stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    filename = f"metaphornik_analyses_{stamp}.json"
    return JSONResponse(
        content=store.export(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_analyses(
    request: Request, store: AnalysisStore = Depends(get_store),
):
    """Merge an exported file into the store."""
    imported = await store.import_payload(await request.body())
    return {"imported": imported, "total": len(store.all())}


@router.get("/{metaphor:path}")
async def get_analysis(metaphor: str, store: AnalysisStore = Depends(get_store)):
    stored = store.get(metaphor)
    if stored is None:
        raise ResourceNotFoundError("Analysis", metaphor)
    return stored.to_wire()


@router.delete("/{metaphor:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_analysis(
    metaphor: str,
    store: AnalysisStore = Depends(get_store),
    registry: WorkspaceRegistry = Depends(get_registry),
):
    if not await store.delete_analysis(metaphor):
        raise ResourceNotFoundError("Analysis", metaphor)
    registry.forget_metaphor(metaphor)
    logger.info("Analysis deleted", extra={"metaphor": metaphor})
