"""
Business Logic Services

Includes:
- CollectionService: Collection hierarchy management
- DocumentQueryService: Filtered, sorted and paginated document listing
- DocumentLifecycleService: Upload, update, soft delete and bulk operations
- DocumentEnrichmentService: Text extraction, thumbnails and OCR recovery
- ChatService: Per-document conversation with the LLM
"""

# Import services directly from their modules instead
