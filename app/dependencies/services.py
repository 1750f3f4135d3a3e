"""
Service providers for FastAPI routes.

Each upstream gateway is built per request from settings. Tests replace the
leaf providers through ``app.dependency_overrides``, and everything built on
top of them (ingestion, exam generation) picks the replacements up.
"""
from __future__ import annotations

from fastapi import Depends

from app.database import engine
from app.services.chat import AzureOpenAIChatService
from app.services.embedding import AzureOpenAIEmbeddingService
from app.services.exam_generator import ExamGenerator
from app.services.ingestion import DocumentIngestionService
from app.services.ocr import MistralOCRService
from app.services.vector_index import VectorIndexStore


def get_vector_index() -> VectorIndexStore:
    return VectorIndexStore(engine)


def get_embedding_service() -> AzureOpenAIEmbeddingService:
    return AzureOpenAIEmbeddingService()


def get_chat_service() -> AzureOpenAIChatService:
    return AzureOpenAIChatService()


def get_ocr_service() -> MistralOCRService:
    return MistralOCRService()


def get_ingestion_service(
    embedder=Depends(get_embedding_service),
    index=Depends(get_vector_index),
) -> DocumentIngestionService:
    return DocumentIngestionService(embedder, index)


def get_exam_generator(
    embedder=Depends(get_embedding_service),
    index=Depends(get_vector_index),
    chat=Depends(get_chat_service),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> ExamGenerator:
    return ExamGenerator(embedder, index, chat, ingestion)
