from __future__ import annotations


class DocQAError(Exception):
    """Base class for every error raised by docqa."""


class PreconditionError(DocQAError):
    """The corpus cannot answer anything (nothing stored, incompatible vectors)."""


class EmptyCorpusError(PreconditionError):
    pass


class EmbeddingDimensionError(PreconditionError):
    def __init__(self, expected: int, found: int, chunk_id: str):
        super().__init__(
            f"Chunk {chunk_id} has embedding dimension {found}, query has {expected}"
        )
        self.expected = expected
        self.found = found
        self.chunk_id = chunk_id


class CollaboratorError(DocQAError):
    """An external collaborator (embedding, generation) failed."""


class EmbeddingError(CollaboratorError):
    pass


class GenerationError(CollaboratorError):
    pass


class IngestionError(DocQAError):
    def __init__(self, doc_id: str, message: str):
        super().__init__(f"Ingestion of {doc_id} failed: {message}")
        self.doc_id = doc_id


class QueryCancelled(DocQAError):
    pass
