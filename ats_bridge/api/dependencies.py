"""
FastAPI dependencies

Thin wrappers around the service singletons so routes can be wired with
Depends() and tests can swap them through app.dependency_overrides.
"""
from ats_bridge.services.document_service import DocumentService, get_document_service
from ats_bridge.services.extraction_service import ExtractionService, get_extraction_service
from ats_bridge.services.revision_service import RevisionService, get_revision_service
from ats_bridge.services.workflow_service import (
    SessionStore,
    WorkflowService,
    get_session_store,
    get_workflow_service,
)


def get_document_service_dependency() -> DocumentService:
    """Get document service instance"""
    return get_document_service()


def get_extraction_service_dependency() -> ExtractionService:
    """Get extraction service instance"""
    return get_extraction_service()


def get_revision_service_dependency() -> RevisionService:
    """Get revision service instance"""
    return get_revision_service()


def get_workflow_service_dependency() -> WorkflowService:
    """Get workflow service instance"""
    return get_workflow_service()


def get_session_store_dependency() -> SessionStore:
    """Get session store instance"""
    return get_session_store()
