import uvicorn
from fastapi import FastAPI

from docqa.api.routes_ask import router as ask_router
from docqa.api.routes_ingest import router as ingest_router
from docqa.core.config import settings
from docqa.core.logging_utils import setup_logging

setup_logging(settings.log_level, settings.log_file)

app = FastAPI(title="docqa")

app.include_router(ask_router)
app.include_router(ingest_router)


def run() -> None:
    uvicorn.run("docqa.api.main:app", host=settings.api_host, port=settings.api_port)
