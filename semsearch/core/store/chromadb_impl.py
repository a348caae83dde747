"""Chroma backend for the DocumentCollection abstraction."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import chromadb
from chromadb import PersistentClient
from chromadb.api.models.Collection import Collection

from ...errors import SearchIndexError
from ..records import VECTOR_KEY, vector_path
from .base import Document, DocumentCollection, SearchIndex
from .filters import matches_filter
from .pipeline import Row, Stage, apply_stages

TEXT_KEY = "text"
# metadata key listing the fields stored as JSON strings
JSON_FIELDS_KEY = "_json_fields"
_INCLUDE = ["embeddings", "metadatas", "documents"]


def _flatten(payload: Dict[str, Any], encoded: List[str], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in payload.items():
        name = f"{prefix}{key}"
        if value is None:
            continue
        if isinstance(value, dict) and value:
            flat.update(_flatten(value, encoded, prefix=f"{name}."))
        elif isinstance(value, datetime):
            flat[name] = value.isoformat()
        elif isinstance(value, (str, int, float, bool)):
            flat[name] = value
        else:
            # Chroma metadata only holds scalars
            flat[name] = json.dumps(value, default=str)
            encoded.append(name)
    return flat


def _unflatten(flat: Dict[str, Any]) -> Dict[str, Any]:
    flat = dict(flat)
    for key in json.loads(flat.pop(JSON_FIELDS_KEY, None) or "[]"):
        if isinstance(flat.get(key), str):
            flat[key] = json.loads(flat[key])
    nested: Dict[str, Any] = {}
    for key, value in flat.items():
        target = nested
        parts = key.split(".")
        for part in parts[:-1]:
            existing = target.get(part)
            if not isinstance(existing, dict):
                existing = target[part] = {}
            target = existing
        target[parts[-1]] = value
    return nested


def _score(space: str, distance: float) -> float:
    # Chroma reports distances; convert to a higher-is-better score
    if space in {"cosine", "ip"}:
        # float32 distances can dip just below zero for identical vectors
        return max(-1.0, min(1.0, 1.0 - distance))
    return 1.0 / (1.0 + distance)


class ChromaDocumentCollection(DocumentCollection):
    """Concrete DocumentCollection backed by one Chroma collection.

    Chroma keeps one embedding per record, so each handle serves a single
    embedding field (``vector_field``). Chroma maintains its HNSW index
    implicitly; named search indexes are a logical registry on this handle
    that pins the indexed path and dimensionality.
    """

    def __init__(
        self,
        client: Any,
        name: str,
        *,
        vector_field: str = "embedding",
        space: str = "cosine",
    ) -> None:
        super().__init__(name)
        if space not in {"cosine", "ip", "l2"}:
            raise ValueError(f"Unsupported Chroma space: {space}")
        self.vector_field = vector_field
        self.space = space
        self._collection: Collection = client.get_or_create_collection(
            name=name, metadata={"hnsw:space": space}
        )
        self._indexes: Dict[str, SearchIndex] = {}

    @classmethod
    def persistent(cls, path: Path, name: str, **kwargs: Any) -> "ChromaDocumentCollection":
        return cls(PersistentClient(path=str(path)), name, **kwargs)

    @property
    def supports_search_indexes(self) -> bool:
        return True

    # Record mapping -----------------------------------------------------
    def _to_record(self, document: Document) -> Dict[str, Any]:
        payload = dict(document)
        doc_id = payload.pop("_id", None)
        if doc_id is None:
            raise ValueError("Documents stored in Chroma need an '_id'")
        embedding_record = dict(payload.pop(self.vector_field, None) or {})
        embedding = embedding_record.pop(VECTOR_KEY, None)
        if embedding is None or len(embedding) == 0:
            raise ValueError(f"Document {doc_id!r} has no vector at '{vector_path(self.vector_field)}'")
        text = payload.pop(TEXT_KEY, None)
        encoded: List[str] = []
        metadata: Dict[str, Any] = {"_id": str(doc_id)}
        metadata.update(_flatten(payload, encoded))
        metadata.update(_flatten(embedding_record, encoded, prefix=f"{self.vector_field}."))
        if encoded:
            metadata[JSON_FIELDS_KEY] = json.dumps(encoded)
        return {
            "id": str(doc_id),
            "embedding": [float(value) for value in embedding],
            "document": text,
            "metadata": metadata,
        }

    def _to_document(
        self,
        doc_id: str,
        embedding: Any,
        metadata: Optional[Dict[str, Any]],
        text: Optional[str],
    ) -> Document:
        document: Document = {"_id": doc_id}
        document.update(_unflatten(dict(metadata or {})))
        if text is not None:
            document[TEXT_KEY] = text
        if embedding is not None:
            embedding_record = document.get(self.vector_field)
            if not isinstance(embedding_record, dict):
                embedding_record = document[self.vector_field] = {}
            embedding_record[VECTOR_KEY] = [float(value) for value in embedding]
        return document

    @staticmethod
    def _column(response: Dict[str, Any], key: str, size: int) -> List[Any]:
        values = response.get(key)
        if values is None:
            return [None] * size
        return list(values)

    # Writes -------------------------------------------------------------
    async def upsert(self, documents: Iterable[Document]) -> List[str]:
        records = [self._to_record(doc) for doc in documents]
        if not records:
            return []
        metadatas = [record["metadata"] for record in records]
        texts = [record["document"] for record in records]
        await asyncio.to_thread(
            self._collection.upsert,
            ids=[record["id"] for record in records],
            embeddings=[record["embedding"] for record in records],
            metadatas=metadatas,
            documents=texts if all(text is not None for text in texts) else None,
        )
        return [record["id"] for record in records]

    # Reads --------------------------------------------------------------
    async def _all_documents(self) -> List[Document]:
        response = await asyncio.to_thread(self._collection.get, include=_INCLUDE)
        ids = list(response.get("ids") or [])
        embeddings = self._column(response, "embeddings", len(ids))
        metadatas = self._column(response, "metadatas", len(ids))
        texts = self._column(response, "documents", len(ids))
        return [
            self._to_document(doc_id, embedding, metadata, text)
            for doc_id, embedding, metadata, text in zip(ids, embeddings, metadatas, texts)
        ]

    async def find(self, query: Optional[Dict[str, Any]] = None) -> List[Document]:
        # TODO: push plain metadata equality clauses down into Chroma's where filter
        documents = await self._all_documents()
        return [doc for doc in documents if matches_filter(doc, query)]

    async def aggregate(self, pipeline: Sequence[Stage]) -> List[Document]:
        stages = list(pipeline)
        if stages and "$vectorSearch" in stages[0]:
            rows = await self._vector_search(stages[0]["$vectorSearch"])
            stages = stages[1:]
        else:
            rows = [Row(document=doc) for doc in await self._all_documents()]
        if any("$vectorSearch" in stage for stage in stages):
            raise ValueError("$vectorSearch must be the first stage of a pipeline")
        return [row.document for row in apply_stages(rows, stages)]

    async def _vector_search(self, spec: Dict[str, Any]) -> List[Row]:
        index = self._indexes.get(spec.get("index", ""))
        if index is None:
            return []
        if spec.get("path") != index.path:
            raise SearchIndexError(f"Path '{spec.get('path')}' is not indexed by '{index.name}'")
        query_vector = [float(value) for value in spec.get("queryVector") or []]
        if len(query_vector) != index.num_dimensions:
            raise SearchIndexError(
                f"queryVector has {len(query_vector)} dimensions, index '{index.name}' "
                f"expects {index.num_dimensions}"
            )
        limit = int(spec.get("limit", 0))
        num_candidates = int(spec.get("numCandidates", limit))
        if num_candidates < limit:
            raise ValueError("numCandidates must be greater than or equal to limit")
        count = await asyncio.to_thread(self._collection.count)
        n_results = min(num_candidates, count)
        if n_results <= 0 or limit <= 0:
            return []
        response = await asyncio.to_thread(
            self._collection.query,
            query_embeddings=[query_vector],
            n_results=n_results,
            include=_INCLUDE + ["distances"],
        )
        ids = list((response.get("ids") or [[]])[0])
        size = len(ids)
        embeddings = self._column(response, "embeddings", 1)[0]
        metadatas = self._column(response, "metadatas", 1)[0]
        texts = self._column(response, "documents", 1)[0]
        distances = self._column(response, "distances", 1)[0]
        embeddings = [None] * size if embeddings is None else list(embeddings)
        metadatas = [None] * size if metadatas is None else list(metadatas)
        texts = [None] * size if texts is None else list(texts)
        distances = [None] * size if distances is None else list(distances)

        rows: List[Row] = []
        for doc_id, embedding, metadata, text, distance in zip(ids, embeddings, metadatas, texts, distances):
            document = self._to_document(doc_id, embedding, metadata, text)
            if spec.get("filter") and not matches_filter(document, spec["filter"]):
                continue
            score = _score(self.space, float(distance)) if distance is not None else 0.0
            rows.append(Row(document=document, meta={"vectorSearchScore": score}))
        return rows[:limit]

    # Search indexes -----------------------------------------------------
    async def list_search_indexes(self) -> List[SearchIndex]:
        return list(self._indexes.values())

    async def create_search_index(self, definition: Dict[str, Any]) -> str:
        index = SearchIndex.from_definition(definition)
        if index.path != vector_path(self.vector_field):
            raise SearchIndexError(
                f"Chroma collection '{self.name}' only holds vectors at "
                f"'{vector_path(self.vector_field)}', not '{index.path}'"
            )
        if index.name in self._indexes:
            raise SearchIndexError(f"Search index '{index.name}' already exists")
        self._indexes[index.name] = index
        return index.name

    async def server_version(self) -> Optional[str]:
        return getattr(chromadb, "__version__", None)


__all__ = ["ChromaDocumentCollection"]
