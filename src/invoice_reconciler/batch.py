"""
Batch extraction: one ExtractionRecord per document plus the aggregate BatchIndex.
When max_workers > 1, documents are extracted in parallel; records keep input order.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional, Union

from .extract import IdentifierExtractor
from .models import BatchIndex, BatchResult, Document, ExtractionRecord

logger = logging.getLogger(__name__)


def _extract_one(extractor: IdentifierExtractor, doc: Document) -> ExtractionRecord:
    """Isolate per-document failures; the extractor already absorbs extraction errors."""
    try:
        return extractor.extract_record(doc.name, doc.data)
    except Exception as e:
        logger.warning("Unexpected failure processing %s: %s", doc.name, e)
        return ExtractionRecord(document_name=doc.name, error=str(e))


def process_batch(
    documents: Union[Document, Iterable[Document]],
    extractor: Optional[IdentifierExtractor] = None,
    max_workers: int = 1,
) -> BatchResult:
    """Extract identifiers from every document and build the batch index."""
    if isinstance(documents, Document):
        docs = [documents]
    else:
        docs = list(documents)
    extractor = extractor or IdentifierExtractor()

    if not docs:
        return BatchResult()

    if max_workers <= 1 or len(docs) == 1:
        records = [_extract_one(extractor, d) for d in docs]
    else:
        results: list[Optional[ExtractionRecord]] = [None] * len(docs)
        with ThreadPoolExecutor(max_workers=min(max_workers, len(docs))) as executor:
            future_to_idx = {executor.submit(_extract_one, extractor, d): i for i, d in enumerate(docs)}
            for future in as_completed(future_to_idx):
                idx = future_to_idx[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    results[idx] = ExtractionRecord(document_name=docs[idx].name, error=str(e))
        records = [r for r in results if r is not None]

    index = BatchIndex.from_records(records)
    logger.info(
        "Processed %d document(s): %d identifier(s), %d unique",
        len(records),
        sum(len(r.identifiers) for r in records),
        len(index.unique_identifiers),
    )
    return BatchResult(records=tuple(records), index=index)
