# ============================================================================
# src/lab_ingestion/core/__init__.py
# ============================================================================
"""
Core records, persistence, mapping service and processing queue.

Import the service modules directly (lab_ingestion.core.processing_queue,
lab_ingestion.core.mapping_service, lab_ingestion.core.document_store).
"""
