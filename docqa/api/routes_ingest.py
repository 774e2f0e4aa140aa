from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from docqa.api.deps import get_pipeline
from docqa.api.schemas import DeleteResponse, DocumentOut, IngestIn, IngestResponse
from docqa.core.events import IngestDone, IngestError, IngestEvent, is_terminal
from docqa.pipeline.query_pipeline import QueryPipeline

router = APIRouter()


@router.post("/ingest", response_model=IngestResponse)
def ingest(req: IngestIn, pipeline: QueryPipeline = Depends(get_pipeline)) -> IngestResponse:
    events: List[IngestEvent] = []
    pipeline.ingest(req.to_request(), events.append)

    terminal = next(e for e in reversed(events) if is_terminal(e))
    if isinstance(terminal, IngestDone):
        return IngestResponse(doc_id=terminal.doc_id, chunk_count=terminal.chunk_count)
    if isinstance(terminal, IngestError):
        raise HTTPException(status_code=422, detail=terminal.message)
    raise HTTPException(status_code=500, detail=f"Unexpected ingestion event: {terminal.kind}")


@router.get("/documents", response_model=List[DocumentOut])
def list_documents(pipeline: QueryPipeline = Depends(get_pipeline)) -> List[DocumentOut]:
    return [DocumentOut.from_info(d) for d in pipeline.list_documents()]


@router.delete("/documents/{doc_id}", response_model=DeleteResponse)
def delete_document(doc_id: str, pipeline: QueryPipeline = Depends(get_pipeline)) -> DeleteResponse:
    return DeleteResponse(doc_id=doc_id, deleted_chunks=pipeline.delete_document(doc_id))
