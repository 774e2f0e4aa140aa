from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from docqa.api.deps import get_pipeline
from docqa.api.schemas import AskRequest, AskResponse, Citation, Source, debug_items, event_to_dict
from docqa.core.events import QueryError
from docqa.generation.citation_guard import citations_with_pages
from docqa.pipeline.query_pipeline import QueryPipeline

router = APIRouter()


@router.post("/ask", response_model=AskResponse)
def ask(req: AskRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> AskResponse:
    result = pipeline.answer(req.query)
    if isinstance(result, QueryError):
        raise HTTPException(status_code=502, detail=result.message)

    debug: Optional[Dict[str, Any]] = None
    if req.debug:
        debug = {"sources": debug_items(result.sources)}

    return AskResponse(
        answer=result.text,
        sources=[Source.from_candidate(s) for s in result.sources],
        citations=[Citation(**c) for c in citations_with_pages(result.text, result.sources)],
        debug=debug,
    )


@router.post("/ask/stream")
def ask_stream(req: AskRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> StreamingResponse:
    """One JSON event per line: sources_ready, partial_answer*, final_answer | error."""
    stream = pipeline.stream(req.query)

    def _lines() -> Iterator[str]:
        for event in stream:
            yield json.dumps(event_to_dict(event), ensure_ascii=False) + "\n"

    return StreamingResponse(_lines(), media_type="application/x-ndjson")
