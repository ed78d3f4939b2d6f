"""Batch reconciliation of canonical records against the fingerprint store."""

import logging
from typing import Iterable

from pydantic import ValidationError

from listing_ingest import metrics
from listing_ingest.db.store import FingerprintStore
from listing_ingest.errors import DuplicateRecordError, RecordValidationError
from listing_ingest.models import CanonicalPropertyRecord, ScrapeBatchResult
from listing_ingest.schemas import PropertyCreate, first_error_message

logger = logging.getLogger(__name__)


def validate_record(record: CanonicalPropertyRecord) -> PropertyCreate:
    """
    Check a record against the persisted schema.

    Raises:
        RecordValidationError: With the first violation message
    """
    try:
        return PropertyCreate.model_validate(record.to_dict())
    except ValidationError as e:
        raise RecordValidationError(first_error_message(e)) from e


class BatchReconciler:
    """Classify each record as created, duplicate or error."""

    def __init__(self, store: FingerprintStore):
        self.store = store

    async def reconcile(self, records: Iterable[CanonicalPropertyRecord]) -> ScrapeBatchResult:
        """
        Persist new records and count the rest.

        Records are handled one at a time in input order. A failure on one
        record is recorded and the batch carries on.

        Returns:
            ScrapeBatchResult with created + duplicates + errors == len(records)
        """
        result = ScrapeBatchResult()

        for record in records:
            result.scraped += 1
            outcome = await self._reconcile_one(record, result)
            metrics.reconcile_outcomes_total.labels(outcome=outcome).inc()

        logger.info(
            f"Reconciled {result.scraped} records: {result.created} created, "
            f"{result.duplicates} duplicates, {result.errors} errors"
        )
        return result

    async def _reconcile_one(
        self,
        record: CanonicalPropertyRecord,
        result: ScrapeBatchResult,
    ) -> str:
        source_name, source_url = record.fingerprint
        label = f"{source_name}: {record.title[:80]}"

        try:
            if await self.store.exists(source_name, source_url):
                result.duplicates += 1
                return "duplicate"

            validate_record(record)
            summary = await self.store.insert(record)

        except RecordValidationError as e:
            logger.warning(f"Invalid record {label!r}: {e}")
            result.add_error(label, str(e))
            return "error"
        except DuplicateRecordError:
            # Another run inserted the same fingerprint after our existence check
            result.duplicates += 1
            return "duplicate"
        except Exception as e:
            logger.error(f"Failed to store record {label!r}: {e}")
            result.add_error(label, str(e) or type(e).__name__)
            return "error"

        result.created += 1
        result.created_records.append(summary)
        return "created"
